# services/recipes/main.py
import logging
import os
import sys
import time
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from services.recipes.errors import RecipeServiceError
from services.recipes.favorites_repository import FavoritesRepository, FeedbackRepository
from services.recipes.rate_limiting import RateLimiter
from services.recipes.recipe_cache import RecipeCache
from services.recipes.recipe_generator import RecipeGenerator
from services.recipes.recipe_service import RecipeService
from services.recipes.routes import router as recipes_router
from shared.config import get_settings, validate_settings
from shared.database import create_database
from shared.llm_client import GeminiClient
from shared.middleware import add_middleware_to_app, error_response
from shared.redis_client import RedisCache, create_redis
from shared.supabase_admin import SupabaseAdminClient

# Force unbuffered output for container logs
os.environ.setdefault("PYTHONUNBUFFERED", "1")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
STARTED_AT = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    validate_settings(settings)

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not found in environment; generation will be unavailable")
    if not settings.supabase_service_role_key:
        logger.warning(
            "SUPABASE_SERVICE_ROLE_KEY not found; authentication and account deletion will fail"
        )
    if not settings.supabase_jwt_secret:
        logger.warning("SUPABASE_JWT_SECRET not found; authenticated routes will return 503")

    # Resources opened so far are closed in reverse order, also when a later step fails
    async with AsyncExitStack() as stack:
        db = await create_database(environment=settings.environment)
        stack.push_async_callback(db.close)

        redis_client = await create_redis()
        stack.push_async_callback(redis_client.aclose)

        http_client = await stack.enter_async_context(
            httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)
        )

        gemini = GeminiClient(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            temperature=settings.gemini_temperature,
            max_output_tokens=settings.gemini_max_output_tokens,
            timeout=settings.gemini_timeout_seconds,
            http_client=http_client,
        )
        identity_client = SupabaseAdminClient(
            settings.supabase_url, settings.supabase_service_role_key, http_client
        )
        favorites = FavoritesRepository(db, identity_client)
        recipe_cache = RecipeCache(
            RedisCache(
                redis_client,
                prefix=settings.recipe_cache_prefix,
                max_items=settings.recipe_cache_max_items,
            ),
            ttl_seconds=settings.recipe_cache_ttl_seconds,
        )

        app.state.identity_client = identity_client
        app.state.recipe_service = RecipeService(RecipeGenerator(gemini), recipe_cache, favorites)
        app.state.favorites_repository = favorites
        app.state.feedback_repository = FeedbackRepository(db)
        app.state.rate_limiter = RateLimiter(
            redis_client,
            limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )

        logger.info(f"🚀 ChefIA recipes service started ({settings.environment})")
        yield

        logger.info("Shutting down recipes service...")


app = FastAPI(
    title="ChefIA Recipes Service",
    description="Ingredient-based recipe generation and favorites for the ChefIA app",
    version=get_settings().service_version,
    lifespan=lifespan,
)

add_middleware_to_app(app=app, service_name="chefia-recipes", max_request_size=256 * 1024)

# CORS middleware (executed first)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().allowed_origins,
    allow_credentials="*" not in get_settings().allowed_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
)


@app.exception_handler(RecipeServiceError)
async def recipe_service_error_handler(request: Request, exc: RecipeServiceError):
    logger.error(f"❌ {request.method} {request.url.path}: {type(exc).__name__}: {exc}")
    return error_response(status_code=exc.status_code, message=exc.public_message)


app.include_router(recipes_router, prefix=API_PREFIX)


@app.get("/health")
async def health():
    settings = get_settings()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.time() - STARTED_AT, 3),
        "environment": settings.environment,
        "version": settings.service_version,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
