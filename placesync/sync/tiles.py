"""Tile-based area discovery on top of the Places nearby search."""

import logging
import math
import time
from typing import Dict, List, Optional, Tuple

from placesync.models import PlaceStub
from placesync.vendors import google_places

logger = logging.getLogger(__name__)

# Rough degrees of latitude per meter.
DEGREES_PER_METER = 0.0000089
COVERAGE_FACTOR = 0.8
RING_ANGLES = (0, 60, 120, 180, 240, 300)


def tile_centers(lat: float, lng: float, radius: int) -> List[Tuple[float, float]]:
    """Return the search center plus six points on a hexagonal ring around it."""
    offset = radius * DEGREES_PER_METER * COVERAGE_FACTOR
    lng_scale = 1 / math.cos(math.radians(lat))

    points = [(lat, lng)]
    for angle in RING_ANGLES:
        rad = math.radians(angle)
        points.append((lat + offset * math.cos(rad), lng + offset * math.sin(rad) * lng_scale))
    return points


class TileSearch:
    """Cover a radius with overlapping nearby searches and dedupe by place_id."""

    def __init__(
        self,
        api_key: str,
        *,
        place_type: str = "restaurant",
        rate_limit_delay: float = 0.1,
        page_token_delay: float = 2.0,
    ) -> None:
        self.api_key = api_key
        self.place_type = place_type
        self.rate_limit_delay = rate_limit_delay
        self.page_token_delay = page_token_delay

    def _search_tile(self, lat: float, lng: float, radius: int, found: Dict[str, PlaceStub]) -> int:
        page_token: Optional[str] = None
        pages = 0
        while True:
            if page_token:
                # Page tokens only become valid a short while after they are issued.
                time.sleep(self.page_token_delay)
            payload = google_places.nearby_search(
                lat,
                lng,
                radius,
                self.api_key,
                place_type=self.place_type,
                pagetoken=page_token,
            )
            time.sleep(self.rate_limit_delay)
            pages += 1

            for result in payload.get("results", []):
                place_id = result.get("place_id")
                if not place_id:
                    logger.debug("Skipping result without place_id: %s", result)
                    continue
                if place_id not in found:
                    found[place_id] = PlaceStub.from_result(result)

            page_token = payload.get("next_page_token")
            if not page_token:
                return pages

    def discover(self, lat: float, lng: float, radius: int) -> List[PlaceStub]:
        centers = tile_centers(lat, lng, radius)
        logger.info(
            "Starting comprehensive search center=%s,%s radius=%s search_points=%d",
            lat,
            lng,
            radius,
            len(centers),
        )

        found: Dict[str, PlaceStub] = {}
        for index, (tile_lat, tile_lng) in enumerate(centers, start=1):
            before = len(found)
            pages = self._search_tile(tile_lat, tile_lng, radius, found)
            logger.info(
                "Search point %d/%d (%.6f, %.6f): pages=%d new_places=%d",
                index,
                len(centers),
                tile_lat,
                tile_lng,
                pages,
                len(found) - before,
            )

        logger.info("Search complete: total_places=%d search_points_used=%d", len(found), len(centers))
        return list(found.values())
