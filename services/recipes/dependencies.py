# services/recipes/dependencies.py
from fastapi import Request

from services.recipes.favorites_repository import FavoritesRepository, FeedbackRepository
from services.recipes.recipe_service import RecipeService


def get_recipe_service(request: Request) -> RecipeService:
    return request.app.state.recipe_service


def get_favorites_repository(request: Request) -> FavoritesRepository:
    return request.app.state.favorites_repository


def get_feedback_repository(request: Request) -> FeedbackRepository:
    return request.app.state.feedback_repository
