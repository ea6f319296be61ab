# services/recipes/recipe_cache.py
import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from services.recipes.recipe_schema import Recipe, recipe_list_adapter
from shared.redis_client import RedisCache

logger = logging.getLogger(__name__)

CACHE_KEY_NAMESPACE = "recipes"
CACHE_KEY_SEPARATOR = "-"
DEFAULT_TTL_SECONDS = 60 * 60


def _escape_ingredient(ingredient: str) -> str:
    return ingredient.replace("%", "%25").replace(CACHE_KEY_SEPARATOR, "%2D")


def build_cache_key(ingredients: list[str]) -> str:
    """
    Fingerprint an ingredient list: ``["Tomato", "Onion "]`` and
    ``["onion", "tomato"]`` both map to ``recipes:onion-tomato``.

    Separators inside an ingredient are percent-escaped, so ``["sweet-potato"]``
    and ``["potato", "sweet"]`` get different keys.
    """
    normalized = sorted(_escape_ingredient(ingredient.lower().strip()) for ingredient in ingredients)
    return f"{CACHE_KEY_NAMESPACE}:{CACHE_KEY_SEPARATOR.join(normalized)}"


class RecipeCache:
    """Stores generated recipe batches keyed by ingredient fingerprint."""

    def __init__(self, cache: RedisCache, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self.cache = cache
        self.ttl_seconds = ttl_seconds

    async def get(self, key: str) -> Optional[list[Recipe]]:
        """Cached batch for ``key``; backend or decode failures count as a miss"""
        try:
            cached = await self.cache.get(key)
        except Exception as e:
            logger.warning(f"RECIPE_CACHE: Failed to read {key}: {e}")
            return None

        if cached is None:
            return None

        try:
            return recipe_list_adapter.validate_json(cached)
        except ValidationError as e:
            logger.warning(f"RECIPE_CACHE: Discarding undecodable entry {key}: {e}")
            return None

    async def set(self, key: str, recipes: list[Recipe]) -> bool:
        """Store the whole batch; returns False when the write was skipped"""
        payload = json.dumps(
            [recipe.model_dump(mode="json", by_alias=True) for recipe in recipes]
        )
        try:
            await self.cache.set(key, payload, ttl=self.ttl_seconds)
            return True
        except Exception as e:
            logger.warning(f"RECIPE_CACHE: Failed to write {key}: {e}")
            return False

    async def reset(self) -> None:
        """Drop every cached batch; failures are logged, never raised"""
        try:
            removed = await self.cache.clear()
            logger.info(f"RECIPE_CACHE: Recipe cache cleared successfully ({removed} keys)")
        except Exception as e:
            logger.error(f"RECIPE_CACHE: Error clearing cache: {e}")

    async def stats(self) -> dict[str, Any]:
        timestamp = datetime.now(timezone.utc).isoformat()
        try:
            entries = await self.cache.size()
        except Exception as e:
            logger.error(f"RECIPE_CACHE: Error getting cache stats: {e}")
            return {"status": "error", "timestamp": timestamp}

        return {
            "status": "active",
            "entries": entries,
            "maxItems": self.cache.max_items,
            "ttlSeconds": self.ttl_seconds,
            "timestamp": timestamp,
        }
