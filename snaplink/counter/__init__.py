"""
Durable sequence counters backing short code generation.
"""

from .strategies import CounterStrategy, RedisCounter, DatabaseCounter, InMemoryCounter
from .factory import CounterFactory, CounterBackend

__all__ = [
    "CounterStrategy",
    "RedisCounter",
    "DatabaseCounter",
    "InMemoryCounter",
    "CounterFactory",
    "CounterBackend",
]
