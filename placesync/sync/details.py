"""Place Details retrieval with bounded retries."""

import logging
import time
from typing import Iterable, List, Sequence

from placesync.core.retry import retry_call
from placesync.models import PlaceDetail, PlaceStub, SyncStats
from placesync.vendors import google_places

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 10


class DetailFetcher:
    def __init__(
        self,
        api_key: str,
        *,
        max_retries: int = 3,
        retry_delay: float = 5.0,
        rate_limit_delay: float = 0.1,
    ) -> None:
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.rate_limit_delay = rate_limit_delay

    def _request(self, place_id: str) -> PlaceDetail:
        details = google_places.place_details(place_id, self.api_key)
        time.sleep(self.rate_limit_delay)
        return details

    def fetch(self, place_id: str) -> PlaceDetail:
        """Fetch one place, retrying transient failures with a fixed delay."""
        return retry_call(
            lambda: self._request(place_id),
            retries=self.max_retries,
            delay=self.retry_delay,
            is_retryable=google_places.is_transient,
            operation=f"place_details({place_id})",
        )

    def fetch_all(self, stubs: Iterable[PlaceStub], stats: SyncStats) -> List[PlaceDetail]:
        """Fetch details for every stub; failures are counted in ``stats.errors`` and skipped."""
        stubs = stubs if isinstance(stubs, Sequence) else list(stubs)
        total = len(stubs)
        detailed: List[PlaceDetail] = []

        for index, stub in enumerate(stubs, start=1):
            if not stub.external_id:
                logger.warning("Skipping place without place_id: %s", stub.name)
            else:
                logger.debug("Fetching details %d/%d place_id=%s name=%s", index, total, stub.external_id, stub.name)
                try:
                    detailed.append(self.fetch(stub.external_id))
                except Exception as exc:  # noqa: BLE001
                    stats.errors += 1
                    logger.error("Failed to fetch place details for %s: %s", stub.external_id, exc)

            if index % PROGRESS_INTERVAL == 0:
                logger.info(
                    "Progress update: fetched=%d total=%d percent=%.1f",
                    index,
                    total,
                    index / total * 100,
                )

        return detailed
