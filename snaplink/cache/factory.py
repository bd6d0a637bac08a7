"""
Factory for the resolution cache.

The cache only accelerates redirects, so an unreachable Redis at startup
degrades to a per-process in-memory cache instead of failing the app.
"""

import logging
from enum import Enum

import redis

from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from snaplink.config import settings

logger = logging.getLogger(__name__)


class CacheBackend(Enum):
    """Available cache backends"""
    REDIS = "redis"
    MEMORY = "memory"
    NULL = "null"


def redis_client_from_settings():
    """Redis client bounded by the configured connect/read timeouts"""
    return redis.from_url(
        settings.redis_url,
        socket_connect_timeout=settings.cache_timeout_seconds,
        socket_timeout=settings.cache_timeout_seconds,
    )


class CacheFactory:
    """Singleton factory for the code -> URL cache"""

    _instance: CacheStrategy = None

    @classmethod
    def create(cls, backend: CacheBackend) -> CacheStrategy:
        if cls._instance is None:
            cls._instance = cls._build(backend)
        return cls._instance

    @classmethod
    def _build(cls, backend: CacheBackend) -> CacheStrategy:
        if backend == CacheBackend.MEMORY:
            logger.info("Using in-memory resolution cache")
            return InMemoryCache()
        if backend == CacheBackend.NULL:
            logger.info("Resolution cache disabled")
            return NullCache()
        if backend != CacheBackend.REDIS:
            raise ValueError(f"Unknown cache backend: {backend}")

        client = redis_client_from_settings()
        try:
            client.ping()
        except redis.RedisError as e:
            logger.warning("Redis unreachable at %s (%s), using in-memory cache", settings.redis_url, e)
            return InMemoryCache()
        logger.info("Using Redis resolution cache at %s", settings.redis_url)
        return RedisCache(client)

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
