"""Core data models shared by the listing sync pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

# Raw Place Details payload as returned by the Places API.
PlaceDetail = Dict[str, Any]


@dataclass(frozen=True)
class PlaceStub:
    """Minimal place identity returned by a nearby search."""

    external_id: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    name: Optional[str] = None

    @classmethod
    def from_result(cls, result: Dict[str, Any]) -> "PlaceStub":
        location = (result.get("geometry") or {}).get("location") or {}
        return cls(
            external_id=result["place_id"],
            latitude=location.get("lat"),
            longitude=location.get("lng"),
            name=result.get("name"),
        )


@dataclass
class ListingRecord:
    """Canonical listing as persisted in the local store."""

    name: str
    slug: str
    address: str
    source_id: str
    latitude: float = 0.0
    longitude: float = 0.0
    description: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    cuisine_types: List[str] = field(default_factory=list)
    hours: Optional[Dict[str, Dict[str, str]]] = None
    price_level: str = "MODERATE"
    photos: List[str] = field(default_factory=list)
    rating: Optional[float] = None
    review_count: int = 0
    source: str = "google_places"
    metadata: Dict[str, Any] = field(default_factory=dict, repr=False)
    active: bool = True
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_verified: Optional[str] = None


@dataclass(frozen=True)
class AuditEntry:
    id: str
    entity: str
    entity_id: str
    action: str
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: Optional[str] = None


class SyncPhase(str, Enum):
    IDLE = "idle"
    DISCOVERING = "discovering"
    FETCHING_DETAILS = "fetching_details"
    TRANSFORMING = "transforming"
    IMPORTING = "importing"
    CLEANING_UP = "cleaning_up"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class SyncStats:
    """Counters for a single sync run, passed through every phase."""

    discovered: int = 0
    detailed: int = 0
    transformed: int = 0
    imported: int = 0
    errors: int = 0
    stale: int = 0
    duration: float = 0.0
    success: bool = False
    error: Optional[str] = None
    total: Optional[int] = None
    active: Optional[int] = None
    inactive: Optional[int] = None
    avg_rating: Optional[float] = None

    def merge_store_stats(self, store_stats: Dict[str, Any]) -> None:
        self.total = store_stats.get("total")
        self.active = store_stats.get("active")
        self.inactive = store_stats.get("inactive")
        self.avg_rating = store_stats.get("avg_rating")

    def as_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    place_id: str
    id: Optional[str] = None
    name: Optional[str] = None
    error: Optional[str] = None
