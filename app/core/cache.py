# app/core/cache.py
"""
Cache tier for the task catalog.

RedisCacheStore talks to Redis; NullCacheStore stands in when no cache is
configured. Both keep the same contract: transport problems never leave this
module, a failed read is a miss and a failed write or delete returns False.
Expiry is left to Redis via per-key TTLs.
"""
import asyncio
import json
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError
from loguru import logger

from app.core.config import Settings, settings

SCAN_BATCH_SIZE = 500
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


class CacheUnavailable(Exception):
    """The cache transport failed (connection refused, timeout, protocol error)"""


class CacheStore(ABC):
    """get/set/delete/delete-by-prefix over JSON values"""

    enabled = True

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Cached value, or None on miss"""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Store a JSON-serializable value with a TTL"""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Drop one key"""

    @abstractmethod
    async def delete_by_prefix(self, prefix: str) -> bool:
        """Drop every key starting with prefix"""

    @abstractmethod
    async def ping(self) -> bool:
        """True when the cache service answers"""

    async def close(self) -> None:
        return None


class NullCacheStore(CacheStore):
    """Used when no cache is configured: always a miss, never stores anything"""

    enabled = False

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        return False

    async def delete(self, key: str) -> bool:
        return False

    async def delete_by_prefix(self, prefix: str) -> bool:
        return False

    async def ping(self) -> bool:
        return False


def escape_glob(prefix: str) -> str:
    """Escape Redis MATCH metacharacters so the prefix matches literally"""
    return _GLOB_SPECIAL.sub(r"\\\1", prefix)


class RedisCacheStore(CacheStore):
    """Redis-backed store; values are JSON strings"""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(
            cls,
            redis_url: str,
            socket_timeout: float = 1.0,
            socket_connect_timeout: float = 1.0
    ) -> "RedisCacheStore":
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_connect_timeout,
        )
        return cls(client)

    async def _run(self, operation: str, func, *args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise CacheUnavailable(f"{operation}: {type(e).__name__}: {e}") from e

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._run("GET", self.client.get, key)
        except CacheUnavailable as e:
            logger.warning(f"Cache read degraded to miss for {key}: {e}")
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Undecodable cache entry {key} treated as miss: {e}")
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Value for {key} is not JSON-serializable, not cached: {e}")
            return False

        try:
            await self._run("SET", self.client.set, key, payload, ex=ttl_seconds)
        except CacheUnavailable as e:
            logger.warning(f"Cache write skipped for {key}: {e}")
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            await self._run("DEL", self.client.delete, key)
        except CacheUnavailable as e:
            logger.warning(f"Cache delete skipped for {key}: {e}")
            return False
        return True

    async def _delete_matching(self, pattern: str) -> int:
        deleted = 0
        batch = []
        async for key in self.client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
            batch.append(key)
            if len(batch) >= SCAN_BATCH_SIZE:
                deleted += await self.client.delete(*batch)
                batch = []
        if batch:
            deleted += await self.client.delete(*batch)
        return deleted

    async def delete_by_prefix(self, prefix: str) -> bool:
        pattern = f"{escape_glob(prefix)}*"
        try:
            deleted = await self._run("SCAN/DEL", self._delete_matching, pattern)
        except CacheUnavailable as e:
            logger.warning(f"Cache prefix delete skipped for {prefix}: {e}")
            return False
        logger.debug(f"Purged {deleted} cache entries under {prefix}")
        return True

    async def ping(self) -> bool:
        try:
            return bool(await self._run("PING", self.client.ping))
        except CacheUnavailable as e:
            logger.warning(f"Cache ping failed: {e}")
            return False

    async def close(self) -> None:
        try:
            await self._run("CLOSE", self.client.aclose)
        except CacheUnavailable as e:
            logger.warning(f"Cache client did not close cleanly: {e}")


def build_cache_store(config: Settings = None) -> CacheStore:
    """RedisCacheStore when caching is enabled, NullCacheStore otherwise"""
    config = config or settings
    if not config.CACHE_ENABLED:
        logger.info("Cache disabled - serving every read from the database")
        return NullCacheStore()

    logger.info(f"Cache enabled - Redis at {config.REDIS_URL}")
    return RedisCacheStore.from_url(
        config.REDIS_URL,
        socket_timeout=config.CACHE_SOCKET_TIMEOUT,
        socket_connect_timeout=config.CACHE_CONNECT_TIMEOUT,
    )
