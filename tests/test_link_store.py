"""
Tests for the link store, including concurrent click recording.
"""
import threading
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import OperationalError

from snaplink.analytics.models import ClickMetadata
from snaplink.exceptions import BackingStoreUnavailable, DuplicateCode, NotFound
from snaplink.models.link import Link, utcnow
from snaplink.services.link_store import LinkStore


def make_link(code="AbCdEf1", owner_id=42, url="https://example.com/page"):
    return Link(code=code, owner_id=owner_id, original_url=url, created_at=utcnow(), clicks=0)


def click(observed_at, country="India", city="Mumbai", device="Desktop", os="Windows", browser="Chrome"):
    return ClickMetadata(
        observed_at=observed_at, country=country, city=city, device=device, os=os, browser=browser
    )


class TestLinkStoreCrud:
    def test_create_and_find(self, store):
        store.create(make_link())

        link = store.find_by_code("AbCdEf1")

        assert link.original_url == "https://example.com/page"
        assert link.owner_id == 42
        assert link.clicks == 0
        assert link.first_click_at is None
        assert link.countries == set()
        assert link.attributes == []

    def test_create_duplicate_code(self, store):
        store.create(make_link())

        with pytest.raises(DuplicateCode):
            store.create(make_link(url="https://other.example.com"))

        assert store.find_by_code("AbCdEf1").original_url == "https://example.com/page"

    def test_find_unknown_code(self, store):
        with pytest.raises(NotFound):
            store.find_by_code("doesnotexist")

    def test_exists(self, store):
        store.create(make_link())

        assert store.exists("AbCdEf1") is True
        assert store.exists("doesnotexist") is False

    def test_find_by_owner(self, store):
        store.create(make_link(code="AAAAAA1", owner_id=1))
        store.create(make_link(code="AAAAAA2", owner_id=1))
        store.create(make_link(code="AAAAAA3", owner_id=2))

        codes = {link.code for link in store.find_by_owner(1)}

        assert codes == {"AAAAAA1", "AAAAAA2"}
        assert store.find_by_owner(99) == []

    def test_delete_by_owner(self, store):
        store.create(make_link())

        assert store.delete_by_code_and_owner("AbCdEf1", 42) is True
        with pytest.raises(NotFound):
            store.find_by_code("AbCdEf1")

    def test_delete_by_non_owner_leaves_link(self, store):
        store.create(make_link(owner_id=1))

        assert store.delete_by_code_and_owner("AbCdEf1", 2) is False
        assert store.find_by_code("AbCdEf1").owner_id == 1

    def test_delete_unknown_code(self, store):
        assert store.delete_by_code_and_owner("doesnotexist", 42) is False

    def test_delete_removes_click_metadata(self, store, session_factory):
        store.create(make_link())
        store.record_click("AbCdEf1", click(utcnow()))
        store.delete_by_code_and_owner("AbCdEf1", 42)

        store.create(make_link())

        assert store.find_by_code("AbCdEf1").countries == set()

    def test_database_errors_become_backing_store_unavailable(self):
        def broken_factory():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        with pytest.raises(BackingStoreUnavailable):
            LinkStore(broken_factory).find_by_code("AbCdEf1")


class TestRecordClick:
    def test_first_click_sets_all_fields(self, store):
        store.create(make_link())
        observed = datetime(2024, 1, 1, 12, 0, 0)

        store.record_click("AbCdEf1", click(observed))

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 1
        assert link.first_click_at == observed
        assert link.last_click_at == observed
        assert link.countries == {"India"}
        assert link.cities == {"Mumbai"}
        assert link.devices == {"Desktop"}
        assert link.operating_systems == {"Windows"}
        assert link.browsers == {"Chrome"}

    def test_later_click_keeps_first_click(self, store):
        store.create(make_link())
        first = datetime(2024, 1, 1, 12, 0, 0)
        second = first + timedelta(minutes=5)

        store.record_click("AbCdEf1", click(first))
        store.record_click("AbCdEf1", click(second, country="USA", city="Ashburn"))

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 2
        assert link.first_click_at == first
        assert link.last_click_at == second
        assert link.countries == {"India", "USA"}

    def test_out_of_order_click_does_not_move_last_click_back(self, store):
        store.create(make_link())
        later = datetime(2024, 1, 1, 12, 5, 0)
        earlier = datetime(2024, 1, 1, 12, 0, 0)

        store.record_click("AbCdEf1", click(later))
        store.record_click("AbCdEf1", click(earlier))

        link = store.find_by_code("AbCdEf1")
        assert link.first_click_at == earlier
        assert link.last_click_at == later

    def test_same_country_twice_is_stored_once(self, store, session_factory):
        store.create(make_link())

        store.record_click("AbCdEf1", click(utcnow()))
        store.record_click("AbCdEf1", click(utcnow()))

        link = store.find_by_code("AbCdEf1")
        assert link.clicks == 2
        assert link.countries == {"India"}
        assert [attr.value for attr in link.attributes if attr.kind == "country"] == ["India"]

    def test_click_on_unknown_code(self, store):
        with pytest.raises(NotFound):
            store.record_click("doesnotexist", click(utcnow()))

    def test_concurrent_clicks(self, store):
        """N concurrent clicks: no lost increments, first click is the earliest"""
        store.create(make_link())
        base = datetime(2024, 1, 1, 12, 0, 0)
        observations = [base + timedelta(seconds=i) for i in range(20)]
        countries = ["India", "USA", "Germany", "India"]
        barrier = threading.Barrier(len(observations))
        errors = []

        def worker(index, observed):
            barrier.wait()
            try:
                store.record_click(
                    "AbCdEf1", click(observed, country=countries[index % len(countries)])
                )
            except Exception as e:  # collected and asserted below
                errors.append(e)

        # Start in reverse so the earliest observation is not recorded first
        threads = [
            threading.Thread(target=worker, args=(i, observed))
            for i, observed in reversed(list(enumerate(observations)))
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        link = store.find_by_code("AbCdEf1")
        assert link.clicks == len(observations)
        assert link.first_click_at == min(observations)
        assert link.last_click_at == max(observations)
        assert link.countries == {"India", "USA", "Germany"}
