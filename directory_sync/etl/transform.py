"""Utilities for transforming Google Places listings into canonical restaurants."""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from directory_sync.etl.geo import distance_miles
from directory_sync.models import (
    DEFAULT_CUISINE,
    DEFAULT_PRICE_TIER,
    HOURS_NOT_AVAILABLE,
    CanonicalRestaurant,
    GeoPoint,
    safe_float,
    safe_int,
)

logger = logging.getLogger(__name__)

DEFAULT_MUNICIPALITY = "Katy"
PLACEHOLDER_PHOTO_URL = "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=400&h=250&fit=crop&crop=center"
_PHOTO_MEDIA_URL = "https://places.googleapis.com/v1/{name}/media?maxWidthPx=400&maxHeightPx=250&key={key}"

PRICE_LEVELS = {
    "PRICE_LEVEL_INEXPENSIVE": 1,
    "PRICE_LEVEL_MODERATE": 2,
    "PRICE_LEVEL_EXPENSIVE": 3,
    "PRICE_LEVEL_VERY_EXPENSIVE": 4,
}

CUISINE_BY_TYPE = {
    "chinese_restaurant": "Chinese",
    "italian_restaurant": "Italian",
    "mexican_restaurant": "Mexican",
    "thai_restaurant": "Thai",
    "indian_restaurant": "Indian",
    "japanese_restaurant": "Japanese",
    "korean_restaurant": "Korean",
    "vietnamese_restaurant": "Vietnamese",
    "mediterranean_restaurant": "Mediterranean",
    "american_restaurant": "American",
    "seafood_restaurant": "Seafood",
    "steak_house": "Steakhouse",
    "pizza_restaurant": "Pizza",
    "sandwich_shop": "American",
    "hamburger_restaurant": "Burger",
    "breakfast_restaurant": "Breakfast",
    "bakery": "Bakery",
    "cafe": "Cafe",
    "fast_food_restaurant": "Fast Food",
    "barbecue_restaurant": "BBQ",
}

# Checked in order against the joined type tags.
_CUISINE_KEYWORDS = (
    (("pizza",), "Pizza"),
    (("bbq", "barbecue"), "BBQ"),
    (("burger",), "Burger"),
    (("seafood",), "Seafood"),
    (("steak",), "Steakhouse"),
)

NEIGHBORHOODS = (
    "Cinco Ranch",
    "Mason Creek",
    "Cross Creek Ranch",
    "Falcon Landing",
    "Katy Mills",
    "Old Katy",
    "West Katy",
    "East Katy",
    "Nottingham Country",
    "Pin Oak",
    "Kelliwood",
    "Greatwood",
    "New Territory",
    "Westfield",
)

ROAD_NEIGHBORHOODS = (
    ("MASON ROAD", "Mason Creek"),
    ("MASON RD", "Mason Creek"),
    ("CLAY ROAD", "West Katy"),
    ("CLAY RD", "West Katy"),
)


def determine_cuisine(types: Iterable[str]) -> str:
    types = [str(type_name) for type_name in types or []]
    for type_name in types:
        if type_name in CUISINE_BY_TYPE:
            return CUISINE_BY_TYPE[type_name]

    joined = " ".join(types).lower()
    for keywords, label in _CUISINE_KEYWORDS:
        if any(keyword in joined for keyword in keywords):
            return label
    return DEFAULT_CUISINE


def extract_neighborhood(address: Optional[str], default: str = DEFAULT_MUNICIPALITY) -> str:
    upper_address = (address or "").upper()
    for area in NEIGHBORHOODS:
        if area.upper() in upper_address:
            return area
    for keyword, area in ROAD_NEIGHBORHOODS:
        if keyword in upper_address:
            return area
    return default


def parse_price_tier(price_level: Any) -> int:
    if not isinstance(price_level, str):
        return DEFAULT_PRICE_TIER
    return PRICE_LEVELS.get(price_level, DEFAULT_PRICE_TIER)


def format_hours(opening_hours: Any) -> str:
    if not isinstance(opening_hours, dict):
        return HOURS_NOT_AVAILABLE
    descriptions = opening_hours.get("weekdayDescriptions")
    if not descriptions:
        return HOURS_NOT_AVAILABLE
    return ", ".join(str(line) for line in descriptions)


def build_photo_url(photos: Any, api_key: Optional[str] = None) -> str:
    if not photos or not isinstance(photos, list):
        return PLACEHOLDER_PHOTO_URL
    first = photos[0] if isinstance(photos[0], dict) else {}
    name = first.get("name")
    if name and api_key:
        return _PHOTO_MEDIA_URL.format(name=name, key=api_key)
    return PLACEHOLDER_PHOTO_URL


def _text(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        value = value.get("text")
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _coordinates(location: Any) -> Optional[GeoPoint]:
    if not isinstance(location, dict):
        return None
    lat = safe_float(location.get("latitude"))
    lng = safe_float(location.get("longitude"))
    if lat is None or lng is None:
        return None
    return GeoPoint(lat=lat, lng=lng)


def to_canonical_restaurant(
    place: Dict[str, Any],
    reference: GeoPoint,
    *,
    cuisine_hint: Optional[str] = None,
    municipality: str = DEFAULT_MUNICIPALITY,
    photo_api_key: Optional[str] = None,
) -> CanonicalRestaurant:
    """Map a Places API (New) listing onto a CanonicalRestaurant.

    Missing or malformed fields degrade to defaults; this never raises for a
    dict payload.
    """
    place = place or {}
    name = _text(place.get("displayName")) or "Unknown Restaurant"
    address = _text(place.get("formattedAddress")) or ""

    rating_value = safe_float(place.get("rating"))
    rating = round(rating_value, 1) if rating_value is not None and math.isfinite(rating_value) else 0.0
    review_count = max(safe_int(place.get("userRatingCount")) or 0, 0)

    raw_types = place.get("types")
    types: List[str] = [str(t) for t in raw_types if t] if isinstance(raw_types, list) else []
    cuisine = determine_cuisine(types)
    if cuisine == DEFAULT_CUISINE and cuisine_hint:
        cuisine = cuisine_hint

    neighborhood = extract_neighborhood(address, default=municipality)
    coordinates = _coordinates(place.get("location"))
    distance = distance_miles(coordinates, reference) if coordinates is not None else None

    description = _text(place.get("editorialSummary")) or (
        f"{cuisine} restaurant located in {neighborhood}, {municipality} "
        f"serving delicious food with {rating} star rating."
    )

    return CanonicalRestaurant(
        external_id=_text(place.get("id")),
        name=name,
        address=address,
        cuisine=[cuisine],
        price_tier=parse_price_tier(place.get("priceLevel")),
        rating=rating,
        review_count=review_count,
        coordinates=coordinates,
        phone=_text(place.get("nationalPhoneNumber")),
        website=_text(place.get("websiteUri")),
        hours_text=format_hours(place.get("regularOpeningHours")),
        distance_from_reference=distance,
        neighborhood=neighborhood,
        description=description,
        photo_url=build_photo_url(place.get("photos"), photo_api_key),
        types=types,
        popular=review_count > 50 and rating > 4.0,
    )
