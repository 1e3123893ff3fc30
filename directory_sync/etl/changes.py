"""Policy deciding whether an incoming listing justifies a directory write."""

from typing import Any, List

from directory_sync.models import CanonicalRestaurant, DirectoryRecord

RATING_TOLERANCE = 0.1
SIGNIFICANT_FIELDS = (
    "rating",
    "review_count",
    "phone",
    "website",
    "hours_text",
    "address",
    "price_tier",
)


def _differs(name: str, old: Any, new: Any) -> bool:
    if old == new:
        return False
    # Rating jitter from the provider is ignored.
    if name == "rating":
        return abs((old or 0) - (new or 0)) > RATING_TOLERANCE
    return True


def is_significant(existing: DirectoryRecord, incoming: CanonicalRestaurant) -> bool:
    for name in SIGNIFICANT_FIELDS:
        if _differs(name, getattr(existing, name), getattr(incoming, name)):
            return True
    return False


def changed_fields(existing: DirectoryRecord, incoming: CanonicalRestaurant) -> List[str]:
    """Significant fields that differ, in comparison order."""
    return [
        name
        for name in SIGNIFICANT_FIELDS
        if _differs(name, getattr(existing, name), getattr(incoming, name))
    ]
