"""
Factory for creating counter instances.

Unlike the cache, a counter never falls back to process memory when its
backend is unreachable: that would hand out values another process has
already used.
"""

import logging
from enum import Enum

from .strategies import CounterStrategy, RedisCounter, DatabaseCounter, InMemoryCounter
from snaplink.cache.factory import redis_client_from_settings
from snaplink.config import settings
from snaplink.database.connection import SessionLocal

logger = logging.getLogger(__name__)


class CounterBackend(Enum):
    """Available counter backends"""
    REDIS = "redis"
    DATABASE = "database"
    MEMORY = "memory"


class CounterFactory:
    """Singleton factory for the code generation counter"""

    _instance: CounterStrategy = None

    @classmethod
    def create(cls, backend: CounterBackend) -> CounterStrategy:
        if cls._instance is not None:
            return cls._instance

        if backend == CounterBackend.REDIS:
            cls._instance = RedisCounter(redis_client_from_settings(), key=settings.counter_key)
            logger.info("Redis counter initialized (key=%s)", settings.counter_key)

        elif backend == CounterBackend.DATABASE:
            cls._instance = DatabaseCounter(SessionLocal, name=settings.counter_key)
            logger.info("Database counter initialized (name=%s)", settings.counter_key)

        elif backend == CounterBackend.MEMORY:
            cls._instance = InMemoryCounter()
            logger.warning("In-memory counter initialized; codes restart on every boot")

        else:
            raise ValueError(f"Unknown counter backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
