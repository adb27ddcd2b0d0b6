"""Utilities for transforming Google Places responses into listing records."""

import logging
import re
import uuid
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from placesync.models import ListingRecord

logger = logging.getLogger(__name__)

DEFAULT_CITY = "Katy"
DEFAULT_STATE = "TX"
MAX_PHOTOS = 10
MAX_REVIEWS = 5

CATEGORY_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "restaurant": "Restaurant",
        "food": "Food",
        "cafe": "Cafe",
        "bar": "Bar",
        "meal_delivery": "Delivery",
        "meal_takeaway": "Takeaway",
        "bakery": "Bakery",
        "point_of_interest": "Point of Interest",
    }
)

CUISINE_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "american_restaurant": "American",
        "chinese_restaurant": "Chinese",
        "italian_restaurant": "Italian",
        "japanese_restaurant": "Japanese",
        "mexican_restaurant": "Mexican",
        "indian_restaurant": "Indian",
        "thai_restaurant": "Thai",
        "french_restaurant": "French",
        "greek_restaurant": "Greek",
        "mediterranean_restaurant": "Mediterranean",
        "seafood_restaurant": "Seafood",
        "steakhouse": "Steakhouse",
        "pizza_restaurant": "Pizza",
        "sushi_restaurant": "Sushi",
        "barbecue_restaurant": "BBQ",
        "fast_food_restaurant": "Fast Food",
        "sandwich_shop": "Sandwiches",
        "cafe": "Cafe",
        "bakery": "Bakery",
        "vegetarian_restaurant": "Vegetarian",
    }
)

PRICE_LEVELS: Mapping[int, str] = MappingProxyType({1: "BUDGET", 2: "MODERATE", 3: "EXPENSIVE", 4: "LUXURY"})
DEFAULT_PRICE_LEVEL = "MODERATE"

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

_SLUG_SEPARATOR = re.compile(r"[^a-z0-9]+")


def _random_suffix() -> str:
    return uuid.uuid4().hex[:6]


def parse_address_components(address_components: Iterable[Dict[str, Any]]) -> Dict[str, Optional[str]]:
    parsed: Dict[str, Optional[str]] = {
        "street_number": None,
        "route": None,
        "city": None,
        "state": None,
        "zip": None,
    }
    for component in address_components or []:
        types = set(component.get("types", []))
        if "street_number" in types:
            parsed["street_number"] = component.get("long_name")
        if "route" in types:
            parsed["route"] = component.get("long_name")
        if "locality" in types:
            parsed["city"] = component.get("long_name")
        if "administrative_area_level_1" in types:
            parsed["state"] = component.get("short_name")
        if "postal_code" in types:
            parsed["zip"] = component.get("long_name")
    return parsed


def generate_slug(name: str, suffix_factory: Callable[[], str] = _random_suffix) -> str:
    """Build a URL slug from ``name`` with a random suffix so equal names never collide."""
    base = _SLUG_SEPARATOR.sub("-", name.lower()).strip("-")
    return f"{base}-{suffix_factory()}"


def _map_labels(types: Iterable[str], table: Mapping[str, str]) -> List[str]:
    labels: List[str] = []
    for type_name in types or []:
        label = table.get(type_name)
        if label and label not in labels:
            labels.append(label)
    return labels


def extract_categories(types: Iterable[str]) -> List[str]:
    return _map_labels(types, CATEGORY_LABELS) or ["Restaurant"]


def extract_cuisine_types(types: Iterable[str]) -> List[str]:
    return _map_labels(types, CUISINE_LABELS)


def format_time(value: str) -> str:
    """Turn a 24-hour ``HHMM`` string into ``H:MM AM/PM``."""
    if len(value) != 4:
        return value
    hour = int(value[:2])
    minutes = value[2:]
    suffix = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    return f"{hour}:{minutes} {suffix}"


def transform_hours(opening_hours: Optional[Dict[str, Any]]) -> Optional[Dict[str, Dict[str, str]]]:
    if not opening_hours or "periods" not in opening_hours:
        return None

    hours: Dict[str, Dict[str, str]] = {}
    for period in opening_hours.get("periods") or []:
        opening = period.get("open") or {}
        closing = period.get("close") or {}
        day = opening.get("day")
        if day is None or not 0 <= day < len(DAY_NAMES):
            logger.debug("Ignoring opening period with invalid day: %s", period)
            continue

        day_name = DAY_NAMES[day]
        open_time = opening.get("time")
        close_time = closing.get("time")
        if open_time and close_time:
            hours[day_name] = {"open": format_time(open_time), "close": format_time(close_time)}
        elif open_time:
            hours[day_name] = {"open": "24 hours"}
    return hours


def transform_price_level(price_level: Any) -> str:
    if isinstance(price_level, bool) or not isinstance(price_level, int):
        return DEFAULT_PRICE_LEVEL
    return PRICE_LEVELS.get(price_level, DEFAULT_PRICE_LEVEL)


def is_business_active(status: Optional[str]) -> bool:
    return status is None or status == "OPERATIONAL"


def extract_photo_references(photos: Iterable[Dict[str, Any]]) -> List[str]:
    references = []
    for photo in list(photos or [])[:MAX_PHOTOS]:
        reference = photo.get("photo_reference")
        if reference:
            references.append(reference)
    return references


def extract_metadata(place: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "google_url": place.get("url"),
        "place_id": place.get("place_id"),
        "types": place.get("types", []),
        "business_status": place.get("business_status"),
        "utc_offset": place.get("utc_offset"),
        "vicinity": place.get("vicinity"),
        "permanently_closed": place.get("permanently_closed", False),
        "reviews": list(place.get("reviews") or [])[:MAX_REVIEWS],
    }


def generate_description(name: str, cuisines: List[str], city: str, state: str) -> str:
    if cuisines:
        return f"{name} offers {', '.join(cuisines[:2])} cuisine in {city}, {state}."
    return f"{name} is a restaurant located in {city}, {state}."


def to_listing_record(
    place: Dict[str, Any],
    fallback_city: str = DEFAULT_CITY,
    fallback_state: str = DEFAULT_STATE,
    suffix_factory: Callable[[], str] = _random_suffix,
) -> ListingRecord:
    place_id = place.get("place_id")
    if not place_id:
        raise ValueError("place_id is required to build a listing record")

    location = (place.get("geometry") or {}).get("location") or {}
    address = parse_address_components(place.get("address_components", []))
    city = address["city"] or fallback_city
    state = address["state"] or fallback_state
    types = place.get("types", [])
    name = place.get("name") or "Unknown"
    cuisines = extract_cuisine_types(types)

    record = ListingRecord(
        name=name,
        slug=generate_slug(place.get("name") or "unknown", suffix_factory),
        description=generate_description(name, cuisines, city, state),
        address=place.get("formatted_address") or "",
        city=city,
        state=state,
        zip_code=address["zip"],
        latitude=location.get("lat", 0),
        longitude=location.get("lng", 0),
        phone=place.get("formatted_phone_number"),
        website=place.get("website"),
        categories=extract_categories(types),
        cuisine_types=cuisines,
        hours=transform_hours(place.get("opening_hours")),
        price_level=transform_price_level(place.get("price_level")),
        photos=extract_photo_references(place.get("photos", [])),
        rating=place.get("rating"),
        review_count=place.get("user_ratings_total") or 0,
        source="google_places",
        source_id=place_id,
        metadata=extract_metadata(place),
        active=is_business_active(place.get("business_status")),
    )
    logger.debug("Transformed place %s (%s)", record.source_id, record.name)
    return record


def transform_places(
    places: Iterable[Dict[str, Any]],
    fallback_city: str = DEFAULT_CITY,
    fallback_state: str = DEFAULT_STATE,
    suffix_factory: Callable[[], str] = _random_suffix,
) -> Tuple[List[ListingRecord], int]:
    """Transform a batch, skipping (and counting) records that fail."""
    records: List[ListingRecord] = []
    errors = 0
    total = 0
    for place in places:
        total += 1
        try:
            records.append(to_listing_record(place, fallback_city, fallback_state, suffix_factory))
        except Exception as exc:  # noqa: BLE001
            errors += 1
            logger.warning("Skipped place %s due to transform error: %s", place.get("place_id", "unknown"), exc)

    logger.info("Batch transform complete: total=%d success=%d errors=%d", total, len(records), errors)
    return records, errors
