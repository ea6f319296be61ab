import pytest

from services.recipes.rate_limiting import RateLimiter


@pytest.mark.unit
@pytest.mark.asyncio
async def test_limit_applies_per_window(limiter_redis, test_user):
    limiter = RateLimiter(limiter_redis, limit=2, window_seconds=60)

    assert await limiter.check_limit("recipes_generate", test_user["id"]) is True
    assert await limiter.check_limit("recipes_generate", test_user["id"]) is True
    assert await limiter.check_limit("recipes_generate", test_user["id"]) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_counters_are_scoped_per_user(limiter_redis):
    limiter = RateLimiter(limiter_redis, limit=1, window_seconds=60)

    assert await limiter.check_limit("recipes_generate", "user-a") is True
    assert await limiter.check_limit("recipes_generate", "user-b") is True
    assert await limiter.check_limit("recipes_generate", "user-a") is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_window_key_expires(limiter_redis, test_user):
    limiter = RateLimiter(limiter_redis, limit=5, window_seconds=60)

    await limiter.check_limit("recipes_generate", test_user["id"])

    [key] = limiter_redis.values
    assert key.startswith(f"rate_limit:recipes_generate:{test_user['id']}:")
    assert limiter_redis.ttls[key] == 60
