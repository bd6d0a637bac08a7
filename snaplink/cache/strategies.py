"""
Resolution cache strategies using Strategy Pattern.
Allows switching between different cache backends (Redis, In-Memory, Null).

The cache maps short code -> original URL. It is a read accelerator only:
every backend absorbs its own failures, so callers see a miss (get) or False
(set/delete) and never an exception.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis

from snaplink.exceptions import CacheUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TTL = 86400  # 24 hours


class CacheStrategy(ABC):
    """
    Abstract base class for cache strategies.

    All methods are async because cache operations involve I/O (network for Redis).
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Get value from cache.

        Args:
            key: Short code

        Returns:
            Cached URL, or None when missing, expired or the cache is down
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int = DEFAULT_TTL) -> bool:
        """
        Set value in cache with TTL (Time To Live).

        Args:
            key: Short code
            value: Original URL
            ttl: Time to live in seconds (default: 24 hours)

        Returns:
            True if stored, False otherwise
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete key from cache.

        Returns:
            True if deleted, False if key didn't exist or the cache is down
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass


class RedisCache(CacheStrategy):
    """
    Redis cache implementation.

    The client is expected to carry socket timeouts, so a slow Redis turns
    into a TimeoutError here and degrades to a miss instead of stalling
    the request.
    """

    def __init__(self, redis_client):
        """
        Initialize Redis cache.

        Args:
            redis_client: Redis client instance (redis.Redis)
        """
        self.redis = redis_client

    def _execute(self, command: str, *args, **kwargs):
        try:
            return getattr(self.redis, command)(*args, **kwargs)
        except redis.RedisError as e:
            raise CacheUnavailable(f"Redis {command} failed: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        try:
            value = self._execute("get", key)
        except CacheUnavailable as e:
            logger.warning("Cache get degraded to miss for %s: %s", key, e)
            return None
        if value is None:
            return None
        return value.decode("utf-8") if isinstance(value, bytes) else value

    async def set(self, key: str, value: str, ttl: int = DEFAULT_TTL) -> bool:
        try:
            return bool(self._execute("setex", key, ttl, value))
        except CacheUnavailable as e:
            logger.warning("Cache set skipped for %s: %s", key, e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return bool(self._execute("delete", key))
        except CacheUnavailable as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False

    async def exists(self, key: str) -> bool:
        try:
            return bool(self._execute("exists", key))
        except CacheUnavailable as e:
            logger.warning("Cache exists failed for %s: %s", key, e)
            return False


class InMemoryCache(CacheStrategy):
    """
    In-memory cache implementation using Python dict.

    Entries store their expiry deadline and are evicted lazily on read.
    Not distributed and lost on restart: development and tests only.
    """

    def __init__(self, clock=time.monotonic):
        self._cache: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._cache[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl: int = DEFAULT_TTL) -> bool:
        with self._lock:
            self._cache[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return await self.get(key) is not None


class NullCache(CacheStrategy):
    """
    Null Object Pattern - cache that does nothing.

    Every lookup is a miss, so every redirect goes to the link store.
    """

    async def get(self, key: str) -> Optional[str]:
        return None

    async def set(self, key: str, value: str, ttl: int = DEFAULT_TTL) -> bool:
        return True

    async def delete(self, key: str) -> bool:
        return True

    async def exists(self, key: str) -> bool:
        return False
