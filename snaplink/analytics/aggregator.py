"""
Click Aggregator

Enriches every redirect with geo/device metadata and folds it into the
link's aggregates, off the request path.

Architecture:
- The redirect handler dispatches a ClickEvent and returns immediately
- A bounded thread pool runs enrich() for each event
- At most max_in_flight events are queued or running; beyond that new
  clicks are dropped (backpressure under click storms)
- Delivery is at-most-once: a failed store write is logged and the click
  is lost, there is no retry queue
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from typing import Optional, Set

from snaplink.analytics.geolocation import GeoLocation, GeoLocator
from snaplink.analytics.models import ClickEvent, ClickMetadata, UNKNOWN
from snaplink.analytics.user_agent import classify_user_agent
from snaplink.exceptions import GeolocationError, SnapLinkError
from snaplink.models.link import utcnow

logger = logging.getLogger(__name__)


class ClickAggregator:
    def __init__(
        self,
        store,
        locator: GeoLocator,
        max_workers: int = 4,
        max_in_flight: int = 1000,
    ):
        """
        Initialize aggregator with dependencies.

        Args:
            store: Link store receiving record_click calls
            locator: Geolocation collaborator
            max_workers: Threads running enrichment
            max_in_flight: Queued + running events before clicks are dropped
        """
        self.store = store
        self.locator = locator
        self.max_in_flight = max_in_flight
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="click-aggregator"
        )
        self._slots = threading.BoundedSemaphore(max_in_flight)
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.dropped_count = 0
        self.processed_count = 0

    def _locate(self, client_ip: Optional[str]) -> GeoLocation:
        if not client_ip:
            return GeoLocation()
        try:
            return self.locator.lookup(client_ip)
        except GeolocationError as e:
            # Losing the location is acceptable, losing the click is not
            logger.warning("Geolocation failed for %s: %s", client_ip, e)
            return GeoLocation(country=UNKNOWN, city=UNKNOWN)

    def enrich(
        self,
        code: str,
        client_ip: Optional[str],
        user_agent: Optional[str],
        observed_at: Optional[datetime] = None,
    ) -> bool:
        """
        Geolocate, classify and record one click.

        Returns:
            True if the click was recorded, False if it was dropped
        """
        location = self._locate(client_ip)
        agent = classify_user_agent(user_agent)
        metadata = ClickMetadata(
            observed_at=observed_at or utcnow(),
            country=location.country,
            city=location.city,
            device=agent.device,
            os=agent.os,
            browser=agent.browser,
        )
        try:
            self.store.record_click(code, metadata)
        except SnapLinkError as e:
            logger.error("Dropping click for %s: %s", code, e)
            return False

        with self._lock:
            self.processed_count += 1
        logger.debug("Recorded click for %s from %s", code, metadata.country)
        return True

    def _run(self, event: ClickEvent) -> bool:
        try:
            return self.enrich(event.code, event.client_ip, event.user_agent, event.observed_at)
        except Exception:
            # Worker threads have no caller to propagate to
            logger.exception("Unexpected error while aggregating click for %s", event.code)
            return False

    def dispatch(self, event: ClickEvent) -> bool:
        """
        Schedule enrichment without waiting for it.

        Returns:
            False if the click was dropped (backpressure or shut down)
        """
        if self._closed:
            return self._drop(event, "closed")
        if not self._slots.acquire(blocking=False):
            return self._drop(event, "saturated")

        try:
            future = self._executor.submit(self._run, event)
        except RuntimeError:
            # Executor shut down between the check and the submit
            self._slots.release()
            return self._drop(event, "closed")

        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._on_done)
        return True

    def _drop(self, event: ClickEvent, reason: str) -> bool:
        with self._lock:
            self.dropped_count += 1
        logger.warning("Click aggregator %s, dropping click for %s", reason, event.code)
        return False

    def _on_done(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
        self._slots.release()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._pending)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight clicks.

        Returns:
            True if everything finished within timeout
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, grace_seconds: float = 5.0) -> None:
        """Stop accepting clicks, give in-flight ones a grace period, abandon the rest"""
        self._closed = True
        finished = self.drain(timeout=grace_seconds)
        if not finished:
            logger.warning("Abandoning %d in-flight clicks after %.1fs", self.in_flight, grace_seconds)
        self._executor.shutdown(wait=False, cancel_futures=True)
        logger.info(
            "Click aggregator stopped (processed=%d, dropped=%d)",
            self.processed_count, self.dropped_count,
        )
