"""
Counter strategies for short code generation.

A counter is a single shared, durable sequence. Every backend relies on an
atomic increment primitive of the service that owns the value, so one
increment is never observed by two callers.
"""

import itertools
import logging
import threading
from abc import ABC, abstractmethod

import redis
from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from snaplink.exceptions import BackingStoreUnavailable
from snaplink.models.counter import CounterRow

logger = logging.getLogger(__name__)


class CounterStrategy(ABC):
    """Abstract base class for counter backends"""

    @abstractmethod
    def increment(self) -> int:
        """
        Atomically advance the counter.

        Returns:
            The new counter value (first call returns 1)

        Raises:
            BackingStoreUnavailable: counter service unreachable
        """
        pass


class RedisCounter(CounterStrategy):
    """Counter backed by Redis INCR"""

    def __init__(self, redis_client, key: str = "url_counter"):
        self.redis = redis_client
        self.key = key

    def increment(self) -> int:
        try:
            return int(self.redis.incr(self.key))
        except redis.RedisError as e:
            logger.error("Counter increment failed on %s: %s", self.key, e)
            raise BackingStoreUnavailable("Counter service unavailable") from e


class DatabaseCounter(CounterStrategy):
    """
    Counter backed by a row in the counters table.

    The increment is a single UPDATE ... RETURNING statement, so the database
    row lock serializes concurrent callers. The row is created on first use.
    """

    def __init__(self, session_factory, name: str = "url_counter"):
        self.session_factory = session_factory
        self.name = name

    def _bump(self, session):
        stmt = (
            update(CounterRow)
            .where(CounterRow.name == self.name)
            .values(value=CounterRow.value + 1)
            .returning(CounterRow.value)
        )
        return session.execute(stmt).scalar_one_or_none()

    def increment(self) -> int:
        try:
            with self.session_factory() as session:
                value = self._bump(session)
                if value is None:
                    try:
                        session.execute(insert(CounterRow).values(name=self.name, value=1))
                        value = 1
                    except IntegrityError:
                        # Another process created the row first
                        session.rollback()
                        value = self._bump(session)
                session.commit()
                return int(value)
        except SQLAlchemyError as e:
            logger.error("Counter increment failed on %s: %s", self.name, e)
            raise BackingStoreUnavailable("Counter service unavailable") from e


class InMemoryCounter(CounterStrategy):
    """
    Process-local counter.

    Restarts from the beginning on every start, so it is only fit for
    development and tests.
    """

    def __init__(self, start: int = 1):
        self._values = itertools.count(start)
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            return next(self._values)
