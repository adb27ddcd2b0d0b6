"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_SESSION.headers.update({"Accept": "application/json"})
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
_TIMEOUT = 30

DETAIL_FIELDS = ",".join(
    [
        "place_id",
        "name",
        "formatted_address",
        "address_components",
        "geometry",
        "formatted_phone_number",
        "international_phone_number",
        "website",
        "business_status",
        "opening_hours",
        "price_level",
        "rating",
        "user_ratings_total",
        "types",
        "photos",
        "reviews",
        "url",
    ]
)


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""

    def __init__(self, message: str, status: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status


def is_transient(exc: Exception) -> bool:
    """Any API status failure or network error is worth retrying; anything else is a bug."""
    return isinstance(exc, (GooglePlacesError, requests.RequestException))


def nearby_search(
    lat: float,
    lng: float,
    radius: int,
    api_key: str,
    place_type: str = "restaurant",
    pagetoken: Optional[str] = None,
) -> Dict[str, Any]:
    params = {
        "location": f"{lat},{lng}",
        "radius": radius,
        "type": place_type,
        "key": api_key,
    }
    if pagetoken:
        params["pagetoken"] = pagetoken
    logger.info("Nearby search lat=%s lng=%s radius=%s has_page_token=%s", lat, lng, radius, bool(pagetoken))
    response = _SESSION.get(f"{_BASE_URL}/nearbysearch/json", params=params, timeout=_TIMEOUT)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("nearby_search failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or f"Places API error: {status}", status)
    return payload


def place_details(place_id: str, api_key: str, fields: str = DETAIL_FIELDS) -> Dict[str, Any]:
    params = {"place_id": place_id, "key": api_key, "fields": fields}
    logger.debug("Fetching place details for %s", place_id)
    response = _SESSION.get(f"{_BASE_URL}/details/json", params=params, timeout=_TIMEOUT)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status != "OK":
        logger.error("place_details failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or f"Place details error: {status}", status)
    return payload.get("result", {})
