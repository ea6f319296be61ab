# services/recipes/routes.py
import logging
from datetime import datetime, timezone
from typing import NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException

from services.recipes.dependencies import (
    get_favorites_repository,
    get_feedback_repository,
    get_recipe_service,
)
from services.recipes.errors import RateLimitedError, RecipeServiceError
from services.recipes.favorites_repository import FavoritesRepository, FeedbackRepository
from services.recipes.models import (
    AddFavoriteRequest,
    CacheStatsResponse,
    FavoriteCheckResponse,
    FavoriteMutationResponse,
    FavoritesListResponse,
    GenerateRecipesRequest,
    GenerateRecipesResponse,
    GenerationMetadata,
    MessageResponse,
    SelfTestResponse,
    SubmitFeedbackRequest,
)
from services.recipes.rate_limiting import check_generation_rate_limit
from services.recipes.recipe_service import RecipeService
from shared.auth_middleware import (
    TokenData,
    get_current_user,
    get_current_user_optional,
    require_admin,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recipes", tags=["recipes"])

SELF_TEST_INGREDIENTS = ["tomato", "chicken", "onion"]


def _raise_http(error: RecipeServiceError, operation: str, user_id: Optional[str]) -> NoReturn:
    """Log the internal detail, then surface only the public message"""
    logger.error(
        f"❌ RECIPES: {operation} failed for user {user_id}: "
        f"{type(error).__name__}: {error}"
    )
    headers = None
    if isinstance(error, RateLimitedError) and error.retry_after:
        headers = {"Retry-After": str(error.retry_after)}
    raise HTTPException(
        status_code=error.status_code, detail=error.public_message, headers=headers
    ) from error


def _now() -> datetime:
    return datetime.now(timezone.utc)


@router.post("/generate", response_model=GenerateRecipesResponse)
async def generate_recipes(
    request: GenerateRecipesRequest,
    current_user: TokenData = Depends(check_generation_rate_limit),
    service: RecipeService = Depends(get_recipe_service),
):
    """
    Generate recipes for the given ingredients.
    """
    logger.info(
        f"🍳 RECIPES: Generating recipes for user {current_user.user_id} "
        f"with {len(request.ingredients)} ingredients"
    )

    try:
        recipes = await service.generate_recipes(request.ingredients, current_user.user_id)
    except RecipeServiceError as e:
        _raise_http(e, "generate_recipes", current_user.user_id)

    return GenerateRecipesResponse(
        recipes=recipes,
        metadata=GenerationMetadata(
            ingredients_count=len(request.ingredients),
            recipes_generated=len(recipes),
            timestamp=_now(),
        ),
    )


@router.post("/test", response_model=SelfTestResponse)
async def test_recipe_generation(service: RecipeService = Depends(get_recipe_service)):
    """
    Smoke test of the generation pipeline with a fixed ingredient list.
    """
    try:
        recipes = await service.generate_recipes(SELF_TEST_INGREDIENTS)
    except RecipeServiceError as e:
        logger.error(f"❌ RECIPES: Test recipe generation failed: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=503, detail="Recipe generation service is not available"
        ) from e

    return SelfTestResponse(
        message="Recipe generation service is working",
        test_recipes=recipes,
        timestamp=_now(),
    )


@router.post("/favorites", response_model=FavoriteMutationResponse)
async def add_favorite(
    request: AddFavoriteRequest,
    current_user: TokenData = Depends(get_current_user),
    favorites: FavoritesRepository = Depends(get_favorites_repository),
):
    try:
        favorite = await favorites.upsert_favorite(
            current_user.user_id, request.recipe_id, request.recipe_data
        )
    except RecipeServiceError as e:
        _raise_http(e, "add_favorite", current_user.user_id)

    logger.info(f"⭐ RECIPES: Recipe {request.recipe_id} added to favorites")
    return FavoriteMutationResponse(
        message="Recipe added to favorites",
        data=favorite.model_dump(mode="json", by_alias=True),
    )


@router.delete("/favorites/{recipe_id}", response_model=FavoriteMutationResponse)
async def remove_favorite(
    recipe_id: str,
    current_user: TokenData = Depends(get_current_user),
    favorites: FavoritesRepository = Depends(get_favorites_repository),
):
    try:
        removed = await favorites.delete_favorite(current_user.user_id, recipe_id)
    except RecipeServiceError as e:
        _raise_http(e, "remove_favorite", current_user.user_id)

    return FavoriteMutationResponse(
        message="Recipe removed from favorites",
        data={"recipeId": recipe_id, "removed": removed is not None},
    )


@router.get("/favorites", response_model=FavoritesListResponse)
async def list_favorites(
    current_user: TokenData = Depends(get_current_user),
    favorites: FavoritesRepository = Depends(get_favorites_repository),
):
    try:
        items = await favorites.list_favorites(current_user.user_id)
    except RecipeServiceError as e:
        _raise_http(e, "list_favorites", current_user.user_id)

    return FavoritesListResponse(favorites=items, count=len(items))


@router.get("/favorites/check/{recipe_id}", response_model=FavoriteCheckResponse)
async def check_favorite(
    recipe_id: str,
    current_user: TokenData = Depends(get_current_user),
    favorites: FavoritesRepository = Depends(get_favorites_repository),
):
    try:
        is_favorite = await favorites.favorite_exists(current_user.user_id, recipe_id)
    except RecipeServiceError as e:
        _raise_http(e, "check_favorite", current_user.user_id)

    return FavoriteCheckResponse(recipe_id=recipe_id, is_favorite=is_favorite)


@router.delete("/user/account", response_model=MessageResponse)
async def delete_account(
    current_user: TokenData = Depends(get_current_user),
    service: RecipeService = Depends(get_recipe_service),
):
    """
    Permanently delete the caller's favorites and auth account.
    """
    logger.info(f"🗑️ RECIPES: Account deletion requested by user {current_user.user_id}")

    try:
        await service.delete_user_account(current_user.user_id)
    except RecipeServiceError as e:
        _raise_http(e, "delete_account", current_user.user_id)

    return MessageResponse(message="Account deleted successfully")


@router.post("/feedback", response_model=MessageResponse)
async def submit_feedback(
    request: SubmitFeedbackRequest,
    current_user: Optional[TokenData] = Depends(get_current_user_optional),
    feedback: FeedbackRepository = Depends(get_feedback_repository),
):
    user_id = current_user.user_id if current_user else None
    try:
        await feedback.add_feedback(request.message, email=request.email, user_id=user_id)
    except RecipeServiceError as e:
        _raise_http(e, "submit_feedback", user_id)

    return MessageResponse(message="Feedback received. Thank you!")


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(
    current_user: TokenData = Depends(require_admin),
    service: RecipeService = Depends(get_recipe_service),
):
    return CacheStatsResponse(stats=await service.cache_stats())


@router.delete("/cache", response_model=MessageResponse)
async def clear_cache(
    current_user: TokenData = Depends(require_admin),
    service: RecipeService = Depends(get_recipe_service),
):
    logger.info(f"🧹 RECIPES: Cache reset requested by admin {current_user.user_id}")
    await service.clear_cache()
    return MessageResponse(message="Recipe cache cleared")
