import logging

import pytest

from placesync.models import PlaceStub, SyncStats
from placesync.sync.details import DetailFetcher
from placesync.vendors import google_places


def test_fetch_retries_transient_errors(monkeypatch, no_sleep):
    attempts = []

    def fake_place_details(place_id, api_key):
        attempts.append(place_id)
        if len(attempts) < 3:
            raise google_places.GooglePlacesError("limit", "OVER_QUERY_LIMIT")
        return {"place_id": place_id}

    monkeypatch.setattr(google_places, "place_details", fake_place_details)

    fetcher = DetailFetcher("key", max_retries=3, retry_delay=5, rate_limit_delay=0)
    assert fetcher.fetch("pid") == {"place_id": "pid"}
    assert len(attempts) == 3
    assert no_sleep.count(5) == 2


def test_fetch_retries_every_api_status_failure(monkeypatch, no_sleep):
    attempts = []

    def fake_place_details(place_id, api_key):
        attempts.append(place_id)
        raise google_places.GooglePlacesError("missing", "NOT_FOUND")

    monkeypatch.setattr(google_places, "place_details", fake_place_details)

    with pytest.raises(google_places.GooglePlacesError):
        DetailFetcher("key", max_retries=3, retry_delay=5).fetch("pid")
    assert len(attempts) == 4
    assert no_sleep.count(5) == 3


def test_fetch_all_counts_failures_and_reports_progress(monkeypatch, no_sleep, caplog):
    failing = {"p3", "p7"}
    attempts = {}

    def fake_place_details(place_id, api_key):
        attempts[place_id] = attempts.get(place_id, 0) + 1
        if place_id in failing:
            raise google_places.GooglePlacesError("boom", "UNKNOWN_ERROR")
        return {"place_id": place_id}

    monkeypatch.setattr(google_places, "place_details", fake_place_details)

    stubs = [PlaceStub(external_id=f"p{i}", name=f"Place {i}") for i in range(12)]
    stubs.append(PlaceStub(external_id="", name="no id"))
    stats = SyncStats()

    with caplog.at_level(logging.INFO, logger="placesync.sync.details"):
        details = DetailFetcher("key", max_retries=2, retry_delay=1, rate_limit_delay=0).fetch_all(stubs, stats)

    assert len(details) == 10
    assert stats.errors == 2
    assert attempts["p3"] == 3
    assert attempts["p0"] == 1
    assert sum("Progress update" in message for message in caplog.messages) == 1
