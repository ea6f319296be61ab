#!/usr/bin/env python3
"""
Script to clear every cached recipe batch from Redis.
"""
import asyncio
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from services.recipes.recipe_cache import RecipeCache
from shared.config import get_settings
from shared.redis_client import RedisCache, create_redis


async def clear_recipe_cache():
    """Delete all keys in the recipe cache namespace."""
    settings = get_settings()
    client = None
    try:
        client = await create_redis()
        cache = RedisCache(
            client,
            prefix=settings.recipe_cache_prefix,
            max_items=settings.recipe_cache_max_items,
        )
        recipe_cache = RecipeCache(cache, ttl_seconds=settings.recipe_cache_ttl_seconds)

        before = await cache.size()
        print(f"Found {before} cached recipe batches under '{settings.recipe_cache_prefix}:'")

        await recipe_cache.reset()

        # Verify the namespace is empty
        after = await cache.size()
        print(f"Verification: recipe cache now contains {after} entries")

    except Exception as e:
        print(f"Error clearing recipe cache: {e}")
        sys.exit(1)
    finally:
        if client:
            await client.aclose()


if __name__ == "__main__":
    asyncio.run(clear_recipe_cache())
