# services/recipes/rate_limiting.py
import logging
import time

import redis.asyncio as redis
from fastapi import Depends, HTTPException, Request

from shared.auth_middleware import TokenData, get_current_user

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window request counter per user, stored in Redis"""

    def __init__(self, redis_client: redis.Redis, limit: int = 100, window_seconds: int = 60):
        self.redis = redis_client
        self.limit = limit
        self.window_seconds = window_seconds

    async def check_limit(self, scope: str, user_id: str) -> bool:
        """Count this request; False once the current window is exhausted"""
        current_time = int(time.time())
        window_start = current_time - (current_time % self.window_seconds)
        key = f"rate_limit:{scope}:{user_id}:{window_start}"

        pipe = self.redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self.window_seconds)
        results = await pipe.execute()

        return results[0] <= self.limit


async def check_generation_rate_limit(
    request: Request, current_user: TokenData = Depends(get_current_user)
) -> TokenData:
    """Dependency guarding recipe generation; returns the authenticated user"""
    rate_limiter: RateLimiter = request.app.state.rate_limiter

    try:
        allowed = await rate_limiter.check_limit("recipes_generate", current_user.user_id)
    except Exception as e:
        # Fails open when Redis is unreachable
        logger.warning(f"RATE_LIMIT: Check failed for user {current_user.user_id}: {e}")
        return current_user

    if not allowed:
        logger.warning(f"RATE_LIMIT: User {current_user.user_id} exceeded recipe generation limit")
        raise HTTPException(
            status_code=429,
            detail=(
                f"Rate limit exceeded: Maximum {rate_limiter.limit} requests per "
                f"{rate_limiter.window_seconds} seconds."
            ),
            headers={"Retry-After": str(rate_limiter.window_seconds)},
        )

    return current_user
