"""
Test configuration and fixtures for SnapLink.
This centralizes all test setup, making individual tests clean.
"""

import os

# Keep the app away from Redis and the network before settings are loaded
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_snaplink.db")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("COUNTER_BACKEND", "memory")
os.environ.setdefault("GEO_BACKEND", "null")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import snaplink.models  # noqa: F401  registers tables on Base
from main import app
from snaplink.analytics.aggregator import ClickAggregator
from snaplink.analytics.geolocation import GeoLocation, GeoLocator
from snaplink.cache.strategies import InMemoryCache
from snaplink.counter.strategies import InMemoryCounter
from snaplink.database.connection import Base, make_engine
from snaplink.dependencies import get_feedback_service, get_resolver
from snaplink.exceptions import GeolocationError
from snaplink.services.feedback_service import FeedbackService
from snaplink.services.link_store import LinkStore
from snaplink.services.resolver import RedirectResolver
from snaplink.services.short_code import CodeGenerator, SaltedBase62Encoder

TEST_SALT = "test-salt"


class FakeLocator(GeoLocator):
    """Geolocator answering from a fixed table; unknown IPs fail"""

    def __init__(self, table=None):
        self.table = table or {}
        self.calls = []

    def lookup(self, ip: str) -> GeoLocation:
        self.calls.append(ip)
        if ip not in self.table:
            raise GeolocationError(f"No location for {ip}")
        country, city = self.table[ip]
        return GeoLocation(country=country, city=city)


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    """
    Fresh file-backed SQLite database for each test.
    File-backed so aggregator threads share it.
    """
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}", timeout=30)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def store(session_factory):
    return LinkStore(session_factory)


@pytest.fixture
def cache():
    return InMemoryCache()


@pytest.fixture
def generator():
    return CodeGenerator(InMemoryCounter(), SaltedBase62Encoder(salt=TEST_SALT, min_length=7))


@pytest.fixture
def locator():
    return FakeLocator({
        "103.21.58.1": ("India", "Mumbai"),
        "8.8.8.8": ("USA", "Mountain View"),
        "8.8.4.4": ("USA", "Ashburn"),
    })


@pytest.fixture
def aggregator(store, locator):
    aggregator = ClickAggregator(store, locator, max_workers=4, max_in_flight=100)
    try:
        yield aggregator
    finally:
        aggregator.shutdown(grace_seconds=5)


@pytest.fixture
def resolver(generator, store, cache, aggregator):
    return RedirectResolver(
        generator=generator, store=store, cache=cache, aggregator=aggregator, cache_ttl=60
    )


@pytest.fixture
def feedback_service(session_factory):
    return FeedbackService(session_factory, interval_days=7)


@pytest.fixture(scope="function")
def client(resolver, feedback_service):
    """
    Test client with the resolver and feedback service overridden.
    This is the main fixture that API tests will use.
    """
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_feedback_service] = lambda: feedback_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
