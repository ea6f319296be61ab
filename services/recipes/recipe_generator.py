# services/recipes/recipe_generator.py
import json
import logging

from services.recipes.errors import (
    MalformedResponseError,
    MisconfiguredError,
    ProviderUnavailableError,
    RateLimitedError,
)
from services.recipes.recipe_schema import (
    MIN_STEPS,
    RECIPES_RESPONSE_SCHEMA,
    GeneratedRecipe,
    RecipeValidationError,
    validate_recipes,
)
from shared.json_utils import extract_json_array
from shared.llm_client import GeminiClient, LLMError

logger = logging.getLogger(__name__)

RECIPES_PER_REQUEST = 3
BASIC_SEASONINGS = ["salt", "pepper", "oil or olive oil", "garlic", "onion"]

EXAMPLE_RECIPES = [
    {
        "name": "Grilled Chicken with Tomato Rice",
        "description": "A quick, healthy main course with lean protein and vegetables.",
        "prepTime": "25 min",
        "difficulty": "Easy",
        "servings": 2,
        "ingredients": ["300g chicken breast", "1 cup rice", "2 tomatoes", "salt", "pepper"],
        "steps": [
            "1. Season the chicken with salt, pepper and olive oil.",
            "2. Grill the chicken over medium heat for 10-12 minutes.",
            "3. Cook the rice and stir in the sauteed tomatoes and seasoning.",
        ],
        "tip": "Let the chicken rest for 3 minutes before slicing to keep it juicy.",
    },
    {
        "name": "Sweet Pumpkin Pie",
        "description": "A warm, comforting classic dessert for any occasion.",
        "prepTime": "50 min",
        "difficulty": "Medium",
        "servings": 6,
        "ingredients": ["500g pumpkin", "200g flour", "100g sugar", "2 eggs", "butter"],
        "steps": [
            "1. Cook the pumpkin until soft and mash it into a puree.",
            "2. Mix with sugar, eggs and melted butter.",
            "3. Pour into a lined tin and bake at 180C for 35-40 minutes.",
        ],
        "tip": "Kabocha squash gives the puree a smoother texture.",
    },
]


def build_recipe_prompt(ingredients: list[str]) -> str:
    """Build the generation prompt for the given ingredient list"""
    ingredients_list = ", ".join(i.strip() for i in ingredients if i.strip())
    seasonings = ", ".join(BASIC_SEASONINGS)

    return f"""You are a creative, experienced chef. Create EXACTLY {RECIPES_PER_REQUEST} creative recipes using ONLY the ingredients provided plus basic universal seasonings ({seasonings}).

AVAILABLE INGREDIENTS: {ingredients_list}

ANY KIND OF RECIPE IS WELCOME:
- Main courses, sides, desserts, appetizers, drinks, salads
- Any regional cuisine (Asian, Mediterranean, Brazilian, Mexican, etc.)
- Vegetarian, meat-based, sweet, savory, fried, grilled or baked dishes

MANDATORY RULES:
1. Use ONLY the listed ingredients (plus the basic seasonings).
2. Make the recipes VARIED and DIFFERENT - do not repeat cooking techniques.
3. Include AT LEAST {MIN_STEPS} detailed preparation steps.
4. Return ONLY valid JSON, with no explanations, no markdown and no code fences.
5. EXACT structure expected:

[
  {{
    "name": "Recipe name",
    "description": "Short description (max 80 characters)",
    "prepTime": "Time in minutes or hours (e.g. 25 min, 1 hour)",
    "difficulty": "Easy | Medium | Hard",
    "servings": Whole number of servings,
    "ingredients": ["quantity + ingredient", "e.g. 300g chicken", "2 tomatoes", ...],
    "steps": ["1. Detailed step...", "2. Next step...", "3. Continuing..."],
    "tip": "Useful tip, plating suggestion or optional variation"
  }}
]

OUTPUT EXAMPLES (FOLLOW THE FORMAT ONLY, DO NOT COPY THE CONTENT):
{json.dumps(EXAMPLE_RECIPES, indent=2)}

NOW GENERATE {RECIPES_PER_REQUEST} CREATIVE AND DIFFERENT RECIPES:"""


class RecipeGenerator:
    """
    Turns an ingredient list into validated recipes with a single Gemini call.

    Provider failures never escape as ``LLMError``; they are translated into
    the service error taxonomy here.
    """

    def __init__(self, client: GeminiClient):
        self.client = client

    async def generate(self, ingredients: list[str]) -> list[GeneratedRecipe]:
        if not self.client.is_configured:
            logger.error("GEMINI: GEMINI_API_KEY is not configured")
            raise MisconfiguredError("GEMINI_API_KEY is not configured")

        prompt = build_recipe_prompt(ingredients)

        try:
            text, metadata = await self.client.generate_content(
                prompt, response_schema=RECIPES_RESPONSE_SCHEMA
            )
        except LLMError as e:
            if e.status_code == 429:
                logger.error(f"GEMINI: Rate limit exceeded: {e}")
                raise RateLimitedError(str(e), retry_after=e.retry_after) from e
            logger.error(f"GEMINI: Request failed: {e}")
            raise ProviderUnavailableError(str(e)) from e

        if not text:
            logger.warning("GEMINI: Empty content received")
            raise MalformedResponseError("Empty response from Gemini")

        try:
            payload = extract_json_array(text)
        except ValueError as e:
            logger.error(f"GEMINI: No valid JSON array in response: {text[:300]}")
            raise MalformedResponseError(f"Unparseable Gemini response: {e}") from e

        try:
            recipes = validate_recipes(payload)
        except RecipeValidationError as e:
            logger.error(f"GEMINI: Response failed schema validation: {e.issues}")
            raise MalformedResponseError(f"Invalid recipe schema: {e}") from e

        logger.info(
            f"GEMINI: Generated {len(recipes)} recipes with {metadata.get('model_id')} "
            f"in {metadata.get('generation_time_ms')}ms"
        )
        return recipes
