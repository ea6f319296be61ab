# services/recipes/recipe_service.py
import logging
import re
import time
from typing import Any, Callable, Optional

from services.recipes.errors import InvalidInputError
from services.recipes.favorites_repository import FavoritesRepository
from services.recipes.models import MAX_INGREDIENT_LENGTH, MAX_INGREDIENTS
from services.recipes.recipe_cache import RecipeCache, build_cache_key
from services.recipes.recipe_generator import RecipeGenerator
from services.recipes.recipe_schema import Recipe

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "recipe"


def generate_recipe_id(name: str, index: int, timestamp_ms: int) -> str:
    """``{slug}-{epoch ms}-{position}``; the position keeps ids unique within a batch"""
    return f"{slugify(name)}-{timestamp_ms}-{index}"


def normalize_ingredients(ingredients: list[str]) -> list[str]:
    normalized = (ingredient.lower().strip() for ingredient in ingredients)
    return [ingredient for ingredient in normalized if ingredient]


def _validate_ingredients(ingredients: Any) -> None:
    if not isinstance(ingredients, (list, tuple)):
        raise InvalidInputError("Ingredients must be a list of strings")
    if len(ingredients) == 0:
        raise InvalidInputError("At least one ingredient is required")
    if len(ingredients) > MAX_INGREDIENTS:
        raise InvalidInputError(f"Maximum {MAX_INGREDIENTS} ingredients allowed")
    for ingredient in ingredients:
        if not isinstance(ingredient, str) or not ingredient.strip():
            raise InvalidInputError("Ingredients must be non-empty strings")
        if len(ingredient.strip()) > MAX_INGREDIENT_LENGTH:
            raise InvalidInputError(
                f"Ingredient names must be at most {MAX_INGREDIENT_LENGTH} characters"
            )


class RecipeService:
    """
    Recipe generation with caching, plus account-level operations.

    One cache read per generation call and, on a miss, one write of the whole
    batch. Nothing is written when generation fails.
    """

    def __init__(
        self,
        generator: RecipeGenerator,
        cache: RecipeCache,
        favorites: FavoritesRepository,
        clock: Callable[[], float] = time.time,
    ):
        self.generator = generator
        self.cache = cache
        self.favorites = favorites
        self._clock = clock

    async def generate_recipes(
        self, ingredients: list[str], user_id: Optional[str] = None
    ) -> list[Recipe]:
        _validate_ingredients(ingredients)

        cache_key = build_cache_key(ingredients)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.info(
                f"RECIPES: Returning cached recipes for user {user_id} ({cache_key})"
            )
            return cached

        normalized = normalize_ingredients(ingredients)
        logger.info(f"RECIPES: Generating new recipes for user {user_id}: {', '.join(normalized)}")

        generated = await self.generator.generate(normalized)

        timestamp_ms = int(self._clock() * 1000)
        recipes = [
            Recipe(**recipe.model_dump(), id=generate_recipe_id(recipe.name, index, timestamp_ms))
            for index, recipe in enumerate(generated)
        ]

        await self.cache.set(cache_key, recipes)

        logger.info(f"RECIPES: Generated {len(recipes)} recipes successfully")
        return recipes

    async def delete_user_account(self, user_id: str) -> None:
        """
        Delete every favorite of the user, then the identity itself.

        If removing favorites fails the identity is left untouched, so no
        favorite can outlive its owner.
        """
        removed = await self.favorites.delete_all_favorites_for_user(user_id)
        logger.info(f"RECIPES: Removed {removed} favorites for user {user_id}")

        await self.favorites.delete_identity(user_id)
        logger.info(f"RECIPES: Account deleted for user {user_id}")

    async def clear_cache(self) -> None:
        await self.cache.reset()

    async def cache_stats(self) -> dict[str, Any]:
        return await self.cache.stats()
