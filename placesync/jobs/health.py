"""Health checks used by the ``health`` command."""

import logging
import shutil
from dataclasses import dataclass
from typing import List, Optional

from placesync.core.config import Settings
from placesync.core.db import open_store
from placesync.vendors import google_places

logger = logging.getLogger(__name__)

MIN_FREE_DISK_PERCENT = 10.0
_PLACEHOLDER_KEYS = {"", "your_api_key_here"}


@dataclass(frozen=True)
class CheckResult:
    name: str
    success: bool
    message: str = ""


def check_database(settings: Settings) -> CheckResult:
    try:
        with open_store(settings.database_url, create_schema=False) as store:
            stats = store.get_stats()
    except Exception as exc:  # noqa: BLE001
        return CheckResult("Database Connection", False, str(exc))
    return CheckResult("Database Connection", True, f"{stats['total']} listings")


def check_api_key(settings: Settings) -> CheckResult:
    api_key = settings.google_api_key
    if api_key in _PLACEHOLDER_KEYS:
        return CheckResult("Google API Key", False, "API key not configured")
    return CheckResult("Google API Key", True, f"Configured ({api_key[:10]}...)")


def check_google_api(settings: Settings) -> CheckResult:
    if settings.google_api_key in _PLACEHOLDER_KEYS:
        return CheckResult("Google API Access", False, "skipped, no API key")
    try:
        payload = google_places.nearby_search(
            settings.location_lat,
            settings.location_lng,
            1000,
            settings.google_api_key,
            place_type=settings.search_type,
        )
    except Exception as exc:  # noqa: BLE001
        return CheckResult("Google API Access", False, str(exc))
    return CheckResult("Google API Access", True, f"Connected (found {len(payload.get('results', []))} nearby)")


def check_disk_space(path: str = ".") -> CheckResult:
    usage = shutil.disk_usage(path)
    free_gb = round(usage.free / 1024 ** 3, 2)
    percent_free = round(usage.free / usage.total * 100, 1)
    return CheckResult("Disk Space", percent_free > MIN_FREE_DISK_PERCENT, f"{free_gb}GB free ({percent_free}%)")


def run_checks(settings: Settings, disk_path: Optional[str] = None) -> List[CheckResult]:
    results = [
        check_database(settings),
        check_api_key(settings),
        check_google_api(settings),
        check_disk_space(disk_path or "."),
    ]
    for result in results:
        log = logger.info if result.success else logger.warning
        log("Health check %s: %s %s", result.name, "ok" if result.success else "FAILED", result.message)
    return results
