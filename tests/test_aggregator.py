"""
Tests for the click aggregator.
"""
import logging
import threading
from datetime import datetime
from unittest.mock import MagicMock

from snaplink.analytics.aggregator import ClickAggregator
from snaplink.analytics.models import ClickEvent
from snaplink.exceptions import BackingStoreUnavailable, NotFound
from snaplink.models.link import Link, utcnow

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


def create_link(store, code="AbCdEf1"):
    store.create(Link(code=code, owner_id=42, original_url="https://example.com",
                      created_at=utcnow(), clicks=0))


class TestEnrich:
    def test_enrich_records_metadata(self, store, aggregator):
        create_link(store)
        observed = datetime(2024, 1, 1, 12, 0, 0)

        assert aggregator.enrich("AbCdEf1", "103.21.58.1", CHROME_WINDOWS, observed) is True

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 1
        assert link.first_click_at == observed
        assert link.countries == {"India"}
        assert link.cities == {"Mumbai"}
        assert link.devices == {"Desktop"}
        assert link.operating_systems == {"Windows"}
        assert link.browsers == {"Chrome"}

    def test_geolocation_failure_still_counts_click(self, store, aggregator):
        create_link(store)

        assert aggregator.enrich("AbCdEf1", "192.0.2.1", CHROME_WINDOWS) is True

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 1
        assert link.countries == {"Unknown"}
        assert link.cities == {"Unknown"}

    def test_missing_ip_skips_lookup(self, store, aggregator, locator):
        create_link(store)

        aggregator.enrich("AbCdEf1", None, None)

        assert locator.calls == []
        assert store.find_by_code("AbCdEf1").clicks == 1

    def test_store_failure_drops_click(self, locator):
        store = MagicMock()
        store.record_click.side_effect = BackingStoreUnavailable()
        aggregator = ClickAggregator(store, locator, max_workers=1)
        try:
            assert aggregator.enrich("AbCdEf1", "8.8.8.8", CHROME_WINDOWS) is False
        finally:
            aggregator.shutdown(grace_seconds=1)

    def test_click_on_deleted_link_is_dropped(self, aggregator):
        assert aggregator.enrich("doesnotexist", "8.8.8.8", CHROME_WINDOWS) is False


class TestDispatch:
    def test_dispatched_clicks_are_recorded(self, store, aggregator):
        create_link(store)

        for ip in ("103.21.58.1", "8.8.8.8", "8.8.4.4"):
            assert aggregator.dispatch(ClickEvent(code="AbCdEf1", client_ip=ip, user_agent=CHROME_WINDOWS))
        assert aggregator.drain(timeout=10)

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 3
        assert link.countries == {"India", "USA"}
        assert aggregator.processed_count == 3

    def test_backpressure_drops_clicks(self, locator, caplog):
        release = threading.Event()
        store = MagicMock()
        store.record_click.side_effect = lambda code, metadata: release.wait(5)
        aggregator = ClickAggregator(store, locator, max_workers=1, max_in_flight=2)
        try:
            accepted = [
                aggregator.dispatch(ClickEvent(code="AbCdEf1", client_ip="8.8.8.8"))
                for _ in range(5)
            ]

            assert accepted == [True, True, False, False, False]
            assert aggregator.dropped_count == 3
            assert "Click aggregator saturated" in caplog.text
            assert "closed" not in caplog.text
        finally:
            release.set()
            aggregator.shutdown(grace_seconds=5)

    def test_shutdown_rejects_new_clicks(self, locator, caplog):
        store = MagicMock()
        aggregator = ClickAggregator(store, locator, max_workers=1)
        aggregator.shutdown(grace_seconds=1)

        with caplog.at_level(logging.WARNING, logger="snaplink.analytics.aggregator"):
            assert aggregator.dispatch(ClickEvent(code="AbCdEf1")) is False

        store.record_click.assert_not_called()
        assert aggregator.dropped_count == 1
        assert "Click aggregator closed" in caplog.text
        assert "saturated" not in caplog.text

    def test_store_errors_do_not_escape_workers(self, locator):
        store = MagicMock()
        store.record_click.side_effect = NotFound()
        aggregator = ClickAggregator(store, locator, max_workers=1)
        try:
            assert aggregator.dispatch(ClickEvent(code="AbCdEf1", client_ip="8.8.8.8"))
            assert aggregator.drain(timeout=5)
            assert aggregator.processed_count == 0
        finally:
            aggregator.shutdown(grace_seconds=1)
