# services/recipes/models.py
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, StringConstraints
from pydantic.alias_generators import to_camel

from services.recipes.recipe_schema import Recipe

MAX_INGREDIENTS = 20
MAX_INGREDIENT_LENGTH = 100


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Generation
class GenerateRecipesRequest(BaseModel):
    # Count and blank checks live in RecipeService so they map to 400
    ingredients: list[str]


class GenerationMetadata(CamelModel):
    ingredients_count: int
    recipes_generated: int
    timestamp: datetime


class GenerateRecipesResponse(BaseModel):
    success: bool = True
    recipes: list[Recipe]
    metadata: GenerationMetadata


class SelfTestResponse(CamelModel):
    success: bool = True
    message: str
    test_recipes: list[Recipe]
    timestamp: datetime


# Favorites
class Favorite(CamelModel):
    id: str
    user_id: str
    recipe_id: str
    recipe_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class AddFavoriteRequest(CamelModel):
    recipe_id: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    recipe_data: dict[str, Any] = Field(..., min_length=1)


class FavoriteMutationResponse(BaseModel):
    success: bool = True
    message: str
    data: Optional[dict[str, Any]] = None


class FavoritesListResponse(BaseModel):
    success: bool = True
    favorites: list[Favorite]
    count: int


class FavoriteCheckResponse(CamelModel):
    success: bool = True
    recipe_id: str
    is_favorite: bool


# Account
class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Feedback
class SubmitFeedbackRequest(BaseModel):
    message: str = Field(..., min_length=10, max_length=1000)
    email: Optional[EmailStr] = None


# Cache administration
class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: dict[str, Any]
