import pytest
import requests

from placesync.vendors import google_places


class DummyResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError("http error")

    def json(self):
        return self._payload


class DummySession:
    def __init__(self):
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.response


@pytest.fixture(autouse=True)
def patch_session(monkeypatch):
    session = DummySession()
    monkeypatch.setattr(google_places, "_SESSION", session)
    return session


def test_nearby_search_success(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OK", "results": []})
    payload = google_places.nearby_search(29.7, -95.8, 1500, "key")
    assert payload["status"] == "OK"
    url, params, timeout = patch_session.calls[0]
    assert "nearbysearch" in url
    assert params["location"] == "29.7,-95.8"
    assert params["radius"] == 1500
    assert params["type"] == "restaurant"
    assert "pagetoken" not in params
    assert timeout == 30


def test_nearby_search_passes_page_token(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OK", "results": []})
    google_places.nearby_search(29.7, -95.8, 1500, "key", pagetoken="tok")
    assert patch_session.calls[0][1]["pagetoken"] == "tok"


def test_nearby_search_accepts_zero_results(patch_session):
    patch_session.response = DummyResponse(payload={"status": "ZERO_RESULTS", "results": []})
    assert google_places.nearby_search(0, 0, 10, "key")["results"] == []


def test_nearby_search_error_status(patch_session):
    patch_session.response = DummyResponse(payload={"status": "INVALID_REQUEST", "error_message": "bad"})
    with pytest.raises(google_places.GooglePlacesError) as excinfo:
        google_places.nearby_search(0, 0, 10, "key")
    assert excinfo.value.status == "INVALID_REQUEST"


def test_place_details_success(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OK", "result": {"name": "Acme"}})
    result = google_places.place_details("pid", "key")
    assert result["name"] == "Acme"
    params = patch_session.calls[0][1]
    assert "opening_hours" in params["fields"]
    assert params["place_id"] == "pid"


def test_place_details_error(patch_session):
    patch_session.response = DummyResponse(payload={"status": "OVER_QUERY_LIMIT", "error_message": "limit"})
    with pytest.raises(google_places.GooglePlacesError):
        google_places.place_details("pid", "key")


def test_place_details_http_error(patch_session):
    patch_session.response = DummyResponse(status_code=500)
    with pytest.raises(requests.HTTPError):
        google_places.place_details("pid", "key")


def test_is_transient():
    assert google_places.is_transient(google_places.GooglePlacesError("x", "OVER_QUERY_LIMIT"))
    assert google_places.is_transient(requests.ConnectionError("down"))
    assert google_places.is_transient(google_places.GooglePlacesError("x", "NOT_FOUND"))
    assert google_places.is_transient(google_places.GooglePlacesError("x", "REQUEST_DENIED"))
    assert not google_places.is_transient(ValueError("bug"))
