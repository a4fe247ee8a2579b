"""
Redis cache-aside for data that is read on every page and written rarely.

Only the tag list is cached.  Every operation degrades to a no-op when
Redis is not configured or not reachable: reads report a miss and writes
are skipped, so a cache outage never fails a request.
"""
import json
import logging

import redis.asyncio as redis

from conduit.config import settings

logger = logging.getLogger(__name__)

TAGS_KEY = "conduit:tags"


class CacheManager:
    def __init__(self) -> None:
        self._redis: redis.Redis | None = None

    async def connect(self) -> None:
        """Create the client and check it answers; leaves the cache disabled otherwise."""
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except (redis.RedisError, OSError) as exc:
            logger.warning("Redis unavailable at %s, caching disabled: %s", settings.REDIS_URL, exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Redis connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    async def get(self, key: str) -> list | dict | None:
        """Decoded JSON stored under *key*; None on a miss or any Redis error."""
        if self._redis is None:
            return None
        try:
            raw = await self._redis.get(key)
        except (redis.RedisError, OSError) as exc:
            logger.debug("cache get %s failed: %s", key, exc)
            return None
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: list | dict, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set(key, json.dumps(value), ex=ttl)
        except (redis.RedisError, OSError) as exc:
            logger.debug("cache set %s failed: %s", key, exc)

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        try:
            await self._redis.delete(*keys)
        except (redis.RedisError, OSError) as exc:
            logger.debug("cache delete %s failed: %s", keys, exc)

    async def invalidate_tags(self) -> None:
        """Called after any write that adds or removes article tags."""
        await self.delete(TAGS_KEY)


cache = CacheManager()
