"""Core data models shared by the directory synchronization engine."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

DEFAULT_CUISINE = "Restaurant"
DEFAULT_PRICE_TIER = 2
HOURS_NOT_AVAILABLE = "Hours not available"


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lng: float


@dataclass(slots=True)
class CanonicalRestaurant:
    """Provider-independent snapshot of a restaurant listing."""

    name: str
    address: str = ""
    external_id: Optional[str] = None
    cuisine: List[str] = field(default_factory=lambda: [DEFAULT_CUISINE])
    price_tier: Optional[int] = DEFAULT_PRICE_TIER
    rating: Optional[float] = 0.0
    review_count: Optional[int] = 0
    coordinates: Optional[GeoPoint] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    hours_text: Optional[str] = HOURS_NOT_AVAILABLE
    distance_from_reference: Optional[float] = None
    neighborhood: Optional[str] = None
    description: str = ""
    photo_url: Optional[str] = None
    types: List[str] = field(default_factory=list)
    popular: bool = False

    @property
    def primary_cuisine(self) -> str:
        return self.cuisine[0] if self.cuisine else DEFAULT_CUISINE


@dataclass(slots=True)
class DirectoryRecord(CanonicalRestaurant):
    """A restaurant as stored in the directory, including its store identity."""

    record_id: Any = None
    last_synced_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "DirectoryRecord":
        lat = safe_float(row.get("latitude"))
        lng = safe_float(row.get("longitude"))
        coordinates = GeoPoint(lat=lat, lng=lng) if lat is not None and lng is not None else None

        cuisine = row.get("cuisine")
        if isinstance(cuisine, str):
            cuisine = [cuisine]

        return cls(
            record_id=row.get("id"),
            external_id=row.get("google_place_id") or None,
            name=row.get("name") or "",
            address=row.get("address") or "",
            cuisine=list(cuisine or [DEFAULT_CUISINE]),
            price_tier=safe_int(row.get("price_range")),
            rating=safe_float(row.get("rating")),
            review_count=safe_int(row.get("total_reviews_count")),
            coordinates=coordinates,
            phone=row.get("phone") or None,
            website=row.get("website") or None,
            hours_text=row.get("opening_hours") or HOURS_NOT_AVAILABLE,
            distance_from_reference=safe_float(row.get("distance")),
            neighborhood=row.get("neighborhood"),
            description=row.get("description") or "",
            photo_url=row.get("image"),
            types=list(row.get("types") or []),
            popular=bool(row.get("popular")),
            last_synced_at=row.get("last_updated_from_google"),
        )


@dataclass(frozen=True)
class MatchResult:
    """Outcome of identity resolution; either a matched record or nothing."""

    record: Optional[DirectoryRecord] = None

    @property
    def matched(self) -> bool:
        return self.record is not None

    @classmethod
    def found(cls, record: DirectoryRecord) -> "MatchResult":
        return cls(record=record)

    @classmethod
    def missing(cls) -> "MatchResult":
        return cls()


@dataclass(slots=True)
class SyncSummary:
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.unchanged + self.errors

    def as_dict(self) -> Dict[str, int]:
        return {
            "created": self.created,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "errors": self.errors,
        }


@dataclass(slots=True)
class IncomingListing:
    """Raw provider listing plus the cuisine keyword of the query that found it."""

    raw: Dict[str, Any] = field(repr=False)
    cuisine_hint: Optional[str] = None

    @property
    def external_id(self) -> Optional[str]:
        value = self.raw.get("id")
        return str(value) if value else None

    @property
    def display_name(self) -> str:
        display = self.raw.get("displayName")
        if isinstance(display, dict):
            return display.get("text") or "Unknown Restaurant"
        return str(display or "Unknown Restaurant")


class SyncState(str, Enum):
    NOT_STARTED = "not_started"
    FETCHING_EXISTING = "fetching_existing"
    FETCHING_INCOMING = "fetching_incoming"
    RECONCILING = "reconciling"
    COMPLETED = "completed"
    FAILED = "failed"


def safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def safe_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        return int(value)

    if isinstance(value, str):
        number = safe_float(value.strip())
        if number is not None:
            return int(number)
        # Fallback for display strings such as "1,234 reviews".
        digits = "".join(ch for ch in value if ch.isdigit())
        if digits:
            try:
                return int(digits)
            except ValueError:
                return None
    return None
