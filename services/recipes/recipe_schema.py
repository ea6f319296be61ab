# services/recipes/recipe_schema.py
"""
Recipe shape and validation of model output.

``GeneratedRecipe`` is what the model must return; ``Recipe`` adds the id this
service assigns. Field names are snake_case in Python and camelCase on the
wire.
"""

from enum import Enum
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel

MIN_STEPS = 3

NonEmptyStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"


class GeneratedRecipe(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: NonEmptyStr
    description: NonEmptyStr
    prep_time: NonEmptyStr
    difficulty: Difficulty
    servings: int = Field(..., ge=1, strict=True)
    ingredients: list[NonEmptyStr] = Field(..., min_length=1)
    steps: list[NonEmptyStr] = Field(..., min_length=MIN_STEPS)
    tip: NonEmptyStr


class Recipe(GeneratedRecipe):
    id: NonEmptyStr


GeneratedRecipeList = Annotated[list[GeneratedRecipe], Field(min_length=1)]

_generated_recipes_adapter = TypeAdapter(GeneratedRecipeList)
recipe_list_adapter = TypeAdapter(list[Recipe])


class RecipeValidationError(Exception):
    """Model output did not match the recipe schema"""

    def __init__(self, issues: list[str]):
        super().__init__("; ".join(issues) or "Invalid recipe payload")
        self.issues = issues


def _format_issues(error: ValidationError) -> list[str]:
    issues = []
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or "<root>"
        issues.append(f"{path}: {item['msg']}")
    return issues


def validate_recipes(payload: Any) -> list[GeneratedRecipe]:
    """
    Validate a parsed JSON value as a non-empty list of recipes.

    Raises:
        RecipeValidationError: listing every offending path, e.g.
            ``1.steps: List should have at least 3 items after validation, not 2``
    """
    try:
        return _generated_recipes_adapter.validate_python(payload)
    except ValidationError as e:
        raise RecipeValidationError(_format_issues(e)) from e


# Gemini structured-output schema (OpenAPI subset) for an array of recipes
RECIPES_RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING", "description": "Recipe name."},
            "description": {
                "type": "STRING",
                "description": "Short, creative description of the dish.",
            },
            "prepTime": {
                "type": "STRING",
                "description": 'Total preparation time, e.g. "25 min" or "1 hour".',
            },
            "difficulty": {
                "type": "STRING",
                "enum": [difficulty.value for difficulty in Difficulty],
                "description": "Difficulty level.",
            },
            "servings": {"type": "INTEGER", "description": "Number of servings."},
            "ingredients": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": 'Ingredients with quantities, e.g. ["200g chicken", "2 garlic cloves"].',
            },
            "steps": {
                "type": "ARRAY",
                "items": {"type": "STRING"},
                "description": f"Detailed preparation steps (at least {MIN_STEPS}).",
            },
            "tip": {
                "type": "STRING",
                "description": "A useful tip about the recipe or optional ingredients.",
            },
        },
        "required": [
            "name",
            "description",
            "prepTime",
            "difficulty",
            "servings",
            "ingredients",
            "steps",
            "tip",
        ],
        "propertyOrdering": [
            "name",
            "description",
            "prepTime",
            "difficulty",
            "servings",
            "ingredients",
            "steps",
            "tip",
        ],
    },
}
