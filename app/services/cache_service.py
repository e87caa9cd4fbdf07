import fnmatch
import json
import logging
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Optional

import redis.asyncio as redis

from app.core.config import Config

logger = logging.getLogger(__name__)


class CacheService:
    """Key-value cache with a TTL per key. Values are JSON-compatible."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        raise NotImplementedError

    async def remove_by_pattern(self, pattern: str) -> int:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


class MemoryCacheService(CacheService):
    """Thread-safe in-process LRU cache with per-entry expiry."""

    def __init__(self, capacity: int = 1000, default_ttl: int = 300):
        self.cache = OrderedDict()
        self.capacity = capacity
        self.default_ttl = default_ttl
        self.lock = Lock()
        self._clock = time.monotonic

    async def get(self, key: str) -> Optional[Any]:
        with self.lock:
            if key not in self.cache:
                return None

            value, expiry = self.cache[key]
            if self._clock() > expiry:
                self.cache.pop(key)
                logger.debug(f"Cache entry expired: {key}")
                return None

            # Move to end to signify recent use (for LRU)
            self.cache.move_to_end(key)
            return value

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        with self.lock:
            self.cache[key] = (value, self._clock() + ttl)
            self.cache.move_to_end(key)
            if len(self.cache) > self.capacity:
                evicted, _ = self.cache.popitem(last=False)
                logger.debug(f"Cache capacity reached, evicted {evicted}")

    async def remove(self, key: str) -> None:
        with self.lock:
            self.cache.pop(key, None)

    async def remove_by_pattern(self, pattern: str) -> int:
        with self.lock:
            keys = [key for key in self.cache if fnmatch.fnmatchcase(key, pattern)]
            for key in keys:
                del self.cache[key]
        return len(keys)

    def __len__(self) -> int:
        return len(self.cache)


class RedisCacheService(CacheService):
    """Redis-backed cache. Keys are namespaced with the instance name."""

    def __init__(self, url: str, instance_name: str = "", default_ttl: int = 300, client=None):
        self.client = client or redis.from_url(url, decode_responses=True)
        self.prefix = instance_name
        self.default_ttl = default_ttl

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.client.get(self._key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl
        await self.client.set(self._key(key), json.dumps(value, default=str), ex=ttl)

    async def remove(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def remove_by_pattern(self, pattern: str) -> int:
        keys = [key async for key in self.client.scan_iter(match=self._key(pattern))]
        if not keys:
            return 0
        return await self.client.delete(*keys)

    async def ping(self) -> bool:
        return bool(await self.client.ping())

    async def close(self) -> None:
        await self.client.aclose()


def create_cache_service() -> CacheService:
    if Config.CACHE_BACKEND.lower() == "redis":
        logger.info(f"Using Redis cache at {Config.REDIS_URL}")
        return RedisCacheService(
            Config.REDIS_URL,
            instance_name=Config.CACHE_INSTANCE_NAME,
            default_ttl=Config.CACHE_DEFAULT_TTL_SECONDS,
        )
    logger.info("Using in-memory cache")
    return MemoryCacheService(
        capacity=Config.CACHE_MAX_ENTRIES,
        default_ttl=Config.CACHE_DEFAULT_TTL_SECONDS,
    )
