# shared/redis_client.py
import logging
import os
import time
from typing import Optional

import redis.asyncio as redis

logger = logging.getLogger(__name__)


def redis_url_from_env() -> str:
    """Resolve the Redis URL from REDIS_URL or its individual components"""
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        return redis_url

    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", "6379"))
    password = os.getenv("REDIS_PASSWORD", None)
    db = int(os.getenv("REDIS_DB", "0"))

    if password:
        return f"redis://:{password}@{host}:{port}/{db}"
    return f"redis://{host}:{port}/{db}"


async def create_redis(redis_url: Optional[str] = None) -> redis.Redis:
    """Create a Redis client and verify the connection"""
    client = redis.from_url(
        redis_url or redis_url_from_env(),
        encoding="utf-8",
        decode_responses=True,
        max_connections=50,
        health_check_interval=30,
        socket_connect_timeout=5,
        retry_on_timeout=True,
    )

    # Test connection
    await client.ping()
    return client


class RedisCache:
    """
    Namespaced Redis cache with per-entry TTL and an optional item cap.

    When ``max_items`` is set, every key written through ``set`` is tracked in a
    sorted set scored by write time; once the cap is exceeded the
    least-recently-set entries are evicted.
    """

    def __init__(self, client: redis.Redis, prefix: str = "cache", max_items: Optional[int] = None):
        self.client = client
        self.prefix = prefix
        self.max_items = max_items

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.prefix}:{key}"

    @property
    def _index_key(self) -> str:
        return f"{self.prefix}:__index__"

    async def get(self, key: str) -> Optional[str]:
        """Get value from cache"""
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str, ttl: Optional[int] = None) -> None:
        """Set value in cache with optional TTL"""
        full_key = self._key(key)
        now = time.time()

        # Value and its index entry land together or not at all
        pipe = self.client.pipeline(transaction=True)
        if ttl:
            pipe.setex(full_key, ttl, value)
            pipe.zremrangebyscore(self._index_key, 0, now - ttl)
        else:
            pipe.set(full_key, value)
        pipe.zadd(self._index_key, {full_key: now})
        await pipe.execute()

        if self.max_items:
            await self._evict_overflow()

    async def _evict_overflow(self) -> int:
        overflow = await self.client.zcard(self._index_key) - self.max_items
        if overflow <= 0:
            return 0

        stale_keys = await self.client.zrange(self._index_key, 0, overflow - 1)
        if stale_keys:
            await self.client.delete(*stale_keys)
            await self.client.zrem(self._index_key, *stale_keys)
            logger.debug(f"Evicted {len(stale_keys)} entries from {self.prefix} cache")
        return len(stale_keys)

    async def size(self) -> int:
        """Number of live entries tracked for this namespace"""
        keys = await self.client.zrange(self._index_key, 0, -1)
        if not keys:
            return 0
        return int(await self.client.exists(*keys))

    async def clear(self) -> int:
        """Delete every key in this namespace, returns the number removed"""
        keys = [key async for key in self.client.scan_iter(match=f"{self.prefix}:*")]
        if not keys:
            return 0
        return int(await self.client.delete(*keys))
