"""Great-circle distance helpers."""

import math
from typing import Optional

from directory_sync.models import GeoPoint

EARTH_RADIUS_MILES = 3959


def distance_miles(start: Optional[GeoPoint], end: Optional[GeoPoint]) -> float:
    """Haversine distance in miles, rounded to one decimal.

    Returns NaN when either point is missing; callers decide how to store that.
    """
    if start is None or end is None:
        return math.nan

    start_lat = math.radians(start.lat)
    end_lat = math.radians(end.lat)
    delta_lat = math.radians(end.lat - start.lat)
    delta_lng = math.radians(end.lng - start.lng)

    a = (
        math.sin(delta_lat / 2) ** 2
        + math.cos(start_lat) * math.cos(end_lat) * math.sin(delta_lng / 2) ** 2
    )
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)
