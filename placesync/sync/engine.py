"""Five-phase restaurant sync: discover, fetch details, transform, import, clean up."""

import logging
import time
from typing import Any, Dict, List, Optional

from placesync.core.config import Settings, get_settings
from placesync.core.db import ListingStore
from placesync.etl.transform import transform_places, to_listing_record
from placesync.models import ListingRecord, PlaceDetail, PlaceStub, SyncPhase, SyncStats, VerificationResult
from placesync.sync.details import DetailFetcher
from placesync.sync.tiles import TileSearch

logger = logging.getLogger(__name__)

AUDIT_ENTITY = "Restaurant"
AUDIT_SYSTEM_ID = "system"
ACTION_SYNC = "RESTAURANT_SYNC"
ACTION_SYNC_FAILED = "RESTAURANT_SYNC_FAILED"
ACTION_VERIFIED = "RESTAURANT_VERIFIED"


class SyncEngine:
    def __init__(
        self,
        store: ListingStore,
        *,
        settings: Optional[Settings] = None,
        tile_search: Optional[TileSearch] = None,
        detail_fetcher: Optional[DetailFetcher] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.store = store
        self.tile_search = tile_search or TileSearch(
            self.settings.google_api_key,
            place_type=self.settings.search_type,
            rate_limit_delay=self.settings.rate_limit_delay,
            page_token_delay=self.settings.page_token_delay,
        )
        self.detail_fetcher = detail_fetcher or DetailFetcher(
            self.settings.google_api_key,
            max_retries=self.settings.max_retries,
            retry_delay=self.settings.retry_delay,
            rate_limit_delay=self.settings.rate_limit_delay,
        )
        self.phase = SyncPhase.IDLE
        self.stats = SyncStats()

    def sync(self, *, dry_run: bool = False) -> SyncStats:
        """Run the full pipeline once; failures are audited and re-raised.

        A dry run writes nothing: no upserts and no audit entry, even on failure.
        """
        logger.info("=== Starting restaurant sync (dry_run=%s) ===", dry_run)
        started = time.monotonic()
        stats = SyncStats()
        self.stats = stats

        try:
            self.phase = SyncPhase.DISCOVERING
            logger.info("Step 1: Discovering restaurants from Google Places")
            stubs = self._discover(stats)

            self.phase = SyncPhase.FETCHING_DETAILS
            logger.info("Step 2: Fetching detailed information for %d places", len(stubs))
            details = self.detail_fetcher.fetch_all(stubs, stats)
            stats.detailed = len(details)

            self.phase = SyncPhase.TRANSFORMING
            logger.info("Step 3: Transforming data to the listing schema")
            records = self._transform(details, stats)

            self.phase = SyncPhase.IMPORTING
            if dry_run:
                logger.info("Step 4: Dry run, skipping import of %d listings", len(records))
            else:
                logger.info("Step 4: Importing %d listings", len(records))
                self._import(records, stats)

            self.phase = SyncPhase.CLEANING_UP
            logger.info("Step 5: Running cleanup tasks")
            self._cleanup(stats)

            stats.duration = round(time.monotonic() - started, 2)
            stats.success = True
            if not dry_run:
                self.store.log_audit(AUDIT_ENTITY, AUDIT_SYSTEM_ID, ACTION_SYNC, stats.as_dict())
            self.phase = SyncPhase.COMPLETE
            logger.info("=== Sync complete === %s", stats.as_dict())
            return stats

        except Exception as exc:
            self.phase = SyncPhase.FAILED
            stats.success = False
            stats.error = str(exc)
            stats.duration = round(time.monotonic() - started, 2)
            logger.exception("Sync failed: %s", exc)
            if not dry_run:
                self._audit_failure(stats)
            raise

    def _discover(self, stats: SyncStats) -> List[PlaceStub]:
        stubs = self.tile_search.discover(
            self.settings.location_lat,
            self.settings.location_lng,
            self.settings.search_radius,
        )
        stats.discovered = len(stubs)
        return stubs

    def _transform(self, details: List[PlaceDetail], stats: SyncStats) -> List[ListingRecord]:
        records, errors = transform_places(
            details,
            fallback_city=self.settings.default_city,
            fallback_state=self.settings.default_state,
        )
        stats.transformed = len(records)
        stats.errors += errors
        return records

    def _import(self, records: List[ListingRecord], stats: SyncStats) -> None:
        for record in records:
            try:
                if self.store.upsert(record):
                    stats.imported += 1
            except Exception as exc:  # noqa: BLE001
                stats.errors += 1
                logger.error("Failed to import listing %s (%s): %s", record.source_id, record.name, exc)

    def _cleanup(self, stats: SyncStats) -> None:
        # Staleness is reported only; listings are never deactivated here.
        for listing in self.store.get_stale(self.settings.stale_days):
            logger.info("Found stale listing name=%s last_verified=%s", listing.name, listing.last_verified)
            stats.stale += 1
        stats.merge_store_stats(self.store.get_stats())

    def _audit_failure(self, stats: SyncStats) -> None:
        try:
            self.store.log_audit(
                AUDIT_ENTITY,
                AUDIT_SYSTEM_ID,
                ACTION_SYNC_FAILED,
                None,
                {"error": stats.error, "stats": stats.as_dict()},
            )
        except Exception as audit_exc:  # noqa: BLE001
            logger.error("Failed to record sync failure in audit log: %s", audit_exc)

    def verify_restaurant(self, place_id: str) -> VerificationResult:
        """Refresh a single listing straight from Place Details."""
        logger.info("Verifying restaurant place_id=%s", place_id)
        try:
            details = self.detail_fetcher.fetch(place_id)
            record = to_listing_record(
                details,
                fallback_city=self.settings.default_city,
                fallback_state=self.settings.default_state,
            )
            listing_id = self.store.upsert(record)
            self.store.log_audit(AUDIT_ENTITY, listing_id, ACTION_VERIFIED, None, {"place_id": place_id})
        except Exception as exc:  # noqa: BLE001
            logger.error("Restaurant verification failed for %s: %s", place_id, exc)
            return VerificationResult(success=False, place_id=place_id, error=str(exc))

        logger.info("Restaurant verified place_id=%s id=%s name=%s", place_id, listing_id, record.name)
        return VerificationResult(success=True, place_id=place_id, id=listing_id, name=record.name)

    def close(self) -> None:
        self.store.close()

    def get_stats(self) -> Dict[str, Any]:
        combined = self.stats.as_dict()
        combined.update(self.store.get_stats())
        return combined
