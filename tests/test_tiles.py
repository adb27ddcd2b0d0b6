import math

import pytest

from placesync.sync import tiles
from placesync.vendors import google_places


def result(place_id, name=None):
    return {"place_id": place_id, "name": name or place_id, "geometry": {"location": {"lat": 1.0, "lng": 2.0}}}


@pytest.mark.parametrize("radius", [500, 15000, 50000])
def test_tile_centers_hexagon(radius):
    lat, lng = 29.7858, -95.8244
    centers = tiles.tile_centers(lat, lng, radius)

    assert len(centers) == 7
    assert centers[0] == (lat, lng)

    offset = radius * tiles.DEGREES_PER_METER * tiles.COVERAGE_FACTOR
    cos_lat = math.cos(math.radians(lat))
    for (point_lat, point_lng), angle in zip(centers[1:], tiles.RING_ANGLES):
        rad = math.radians(angle)
        assert point_lat - lat == pytest.approx(offset * math.cos(rad), abs=1e-12)
        assert point_lng - lng == pytest.approx(offset * math.sin(rad) / cos_lat, abs=1e-12)
        # Corrected for meridian convergence, every ring point sits at the same ground distance.
        assert math.hypot(point_lat - lat, (point_lng - lng) * cos_lat) == pytest.approx(offset)


def test_discover_dedupes_across_tiles_and_paginates(monkeypatch, no_sleep):
    calls = []

    def fake_nearby_search(lat, lng, radius, api_key, place_type="restaurant", pagetoken=None):
        calls.append((lat, lng, radius, place_type, pagetoken))
        tile_index = len({(c[0], c[1]) for c in calls}) - 1
        if tile_index == 0 and pagetoken is None:
            return {"status": "OK", "results": [result("a"), result("b")], "next_page_token": "page-2"}
        if pagetoken == "page-2":
            return {"status": "OK", "results": [result("c"), result("a")]}
        return {"status": "OK", "results": [result("b"), result(f"tile-{tile_index}"), {"name": "no id"}]}

    monkeypatch.setattr(google_places, "nearby_search", fake_nearby_search)

    search = tiles.TileSearch("key", rate_limit_delay=0.1, page_token_delay=2.0)
    stubs = search.discover(29.7858, -95.8244, 15000)

    ids = [stub.external_id for stub in stubs]
    assert len(ids) == len(set(ids))
    assert ids == ["a", "b", "c"] + [f"tile-{i}" for i in range(1, 7)]
    assert len({(c[0], c[1]) for c in calls}) == 7
    assert len(calls) == 8
    assert all(c[2] == 15000 for c in calls)
    # One page-token wait plus a rate-limit pause after every request.
    assert no_sleep.count(2.0) == 1
    assert no_sleep.count(0.1) == 8
    assert stubs[0].latitude == 1.0 and stubs[0].name == "a"


def test_discover_propagates_tile_errors(monkeypatch, no_sleep):
    def failing_search(*args, **kwargs):
        raise google_places.GooglePlacesError("denied", "REQUEST_DENIED")

    monkeypatch.setattr(google_places, "nearby_search", failing_search)

    with pytest.raises(google_places.GooglePlacesError):
        tiles.TileSearch("key").discover(29.7858, -95.8244, 1000)
