# shared/config.py
"""
Environment-driven settings for the ChefIA recipes service.

Values are read once from the process environment; FastAPI routes receive them
through the ``get_settings`` dependency so tests can override them.
"""

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number, got {value!r}")


class Settings(BaseModel):
    environment: str = "development"
    service_version: str = "1.0.0"
    allowed_origins: list[str] = ["*"]

    # Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_temperature: float = 0.7
    gemini_max_output_tokens: int = 4000
    gemini_timeout_seconds: float = 30.0

    # Recipe cache
    recipe_cache_ttl_seconds: int = 60 * 60
    recipe_cache_max_items: int = 100
    recipe_cache_prefix: str = "chefia"

    # Fixed-window limiter for /recipes/generate
    rate_limit_requests: int = 100
    rate_limit_window_seconds: int = 60

    # Supabase
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    supabase_jwt_secret: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.environment in ["production", "staging"]


def load_settings() -> Settings:
    """Build settings from environment variables"""
    origins = os.getenv("ALLOWED_ORIGINS", "*")

    return Settings(
        environment=os.getenv("ENVIRONMENT", "development"),
        service_version=os.getenv("SERVICE_VERSION", "1.0.0"),
        allowed_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
        gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
        gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        gemini_temperature=_env_float("GEMINI_TEMPERATURE", 0.7),
        gemini_max_output_tokens=_env_int("GEMINI_MAX_OUTPUT_TOKENS", 4000),
        gemini_timeout_seconds=_env_float("GEMINI_TIMEOUT_SECONDS", 30.0),
        recipe_cache_ttl_seconds=_env_int("RECIPE_CACHE_TTL_SECONDS", 60 * 60),
        recipe_cache_max_items=_env_int("RECIPE_CACHE_MAX_ITEMS", 100),
        recipe_cache_prefix=os.getenv("RECIPE_CACHE_PREFIX", "chefia"),
        rate_limit_requests=_env_int("RATE_LIMIT_REQUESTS", 100),
        rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 60),
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None,
        supabase_jwt_secret=os.getenv("SUPABASE_JWT_SECRET") or None,
    )


def validate_settings(settings: Settings) -> None:
    """Refuse to start a production deployment without its secrets"""
    if settings.is_production and not settings.supabase_jwt_secret:
        raise ValueError(
            f"SUPABASE_JWT_SECRET must be set when ENVIRONMENT={settings.environment}"
        )


@lru_cache
def get_settings() -> Settings:
    """Dependency returning the process-wide settings"""
    return load_settings()
