"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the cache, counter, link store,
geolocator and click aggregator, and wires them into the services used by
the routes. Tests override get_resolver / get_feedback_service.
"""

from functools import lru_cache

from fastapi import Depends, Header

from snaplink.analytics.aggregator import ClickAggregator
from snaplink.analytics.geolocation import GeoLocator, IpApiLocator, NullLocator
from snaplink.cache.factory import CacheFactory, CacheBackend
from snaplink.cache.strategies import CacheStrategy
from snaplink.config import settings
from snaplink.counter.factory import CounterFactory, CounterBackend
from snaplink.database.connection import SessionLocal
from snaplink.services.feedback_service import FeedbackService
from snaplink.services.link_store import LinkStore
from snaplink.services.resolver import RedirectResolver
from snaplink.services.short_code import CodeGenerator, SaltedBase62Encoder


@lru_cache()
def get_cache() -> CacheStrategy:
    return CacheFactory.create(CacheBackend(settings.cache_backend))


@lru_cache()
def get_link_store() -> LinkStore:
    return LinkStore(SessionLocal)


@lru_cache()
def get_code_generator() -> CodeGenerator:
    counter = CounterFactory.create(CounterBackend(settings.counter_backend))
    encoder = SaltedBase62Encoder(
        salt=settings.short_code_salt, min_length=settings.short_code_min_length
    )
    return CodeGenerator(counter, encoder)


@lru_cache()
def get_geolocator() -> GeoLocator:
    if settings.geo_backend == "ip-api":
        return IpApiLocator(settings.geo_api_url, timeout=settings.geo_timeout_seconds)
    if settings.geo_backend == "null":
        return NullLocator()
    raise ValueError(f"Unknown geolocation backend: {settings.geo_backend}")


@lru_cache()
def get_aggregator() -> ClickAggregator:
    return ClickAggregator(
        store=get_link_store(),
        locator=get_geolocator(),
        max_workers=settings.aggregator_max_workers,
        max_in_flight=settings.aggregator_max_in_flight,
    )


def get_resolver(
    cache: CacheStrategy = Depends(get_cache),
    store: LinkStore = Depends(get_link_store),
    generator: CodeGenerator = Depends(get_code_generator),
    aggregator: ClickAggregator = Depends(get_aggregator),
) -> RedirectResolver:
    """Controller depends on the resolver, the resolver on infrastructure"""
    return RedirectResolver(
        generator=generator,
        store=store,
        cache=cache,
        aggregator=aggregator,
        cache_ttl=settings.cache_ttl,
    )


@lru_cache()
def get_feedback_service() -> FeedbackService:
    return FeedbackService(SessionLocal, interval_days=settings.feedback_interval_days)


def get_owner_id(x_owner_id: int = Header(..., description="Owner identity supplied by the caller")) -> int:
    return x_owner_id
