"""Client utilities for the Google Places API (New) text search."""

import logging
from typing import Any, Dict, List, Optional

import requests

from directory_sync.core.cache import TTLCache
from directory_sync.models import GeoPoint

logger = logging.getLogger(__name__)
_SEARCH_URL = "https://places.googleapis.com/v1/places:searchText"

MAX_RESULTS_PER_QUERY = 20
FIELD_MASK = ",".join(
    [
        "places.id",
        "places.displayName",
        "places.formattedAddress",
        "places.location",
        "places.rating",
        "places.userRatingCount",
        "places.priceLevel",
        "places.types",
        "places.websiteUri",
        "places.nationalPhoneNumber",
        "places.businessStatus",
        "places.photos",
        "places.editorialSummary",
        "places.regularOpeningHours",
    ]
)


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


class PlacesClient:
    """Text-search client biased to a circle around a reference point."""

    def __init__(
        self,
        api_key: str,
        *,
        center: GeoPoint,
        radius_meters: int = 15000,
        locality: str = "Katy Texas",
        session: Optional[requests.Session] = None,
        cache: Optional[TTLCache] = None,
        timeout: float = 10,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for Places requests")
        self.api_key = api_key
        self.center = center
        self.radius_meters = radius_meters
        self.locality = locality
        self._session = session or requests.Session()
        self._cache = cache
        self._timeout = timeout

    def build_query(self, cuisine: Optional[str] = None) -> str:
        if cuisine:
            return f"{cuisine} restaurant {self.locality}"
        return f"restaurant {self.locality}"

    def search_restaurants(self, cuisine: Optional[str] = None, max_results: int = MAX_RESULTS_PER_QUERY) -> List[Dict[str, Any]]:
        return self.text_search(self.build_query(cuisine), max_results=max_results)

    def text_search(self, query: str, max_results: int = MAX_RESULTS_PER_QUERY) -> List[Dict[str, Any]]:
        max_results = max(1, min(max_results, MAX_RESULTS_PER_QUERY))
        cache_key = (query, max_results)
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit for query=%s", query)
                return list(cached)

        body = {
            "textQuery": query,
            "locationBias": {
                "circle": {
                    "center": {"latitude": self.center.lat, "longitude": self.center.lng},
                    "radius": float(self.radius_meters),
                }
            },
            "maxResultCount": max_results,
            "languageCode": "en",
        }
        headers = {
            "Content-Type": "application/json",
            "X-Goog-Api-Key": self.api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }
        try:
            response = self._session.post(_SEARCH_URL, json=body, headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("text_search request failed for query=%s: %s", query, exc)
            raise GooglePlacesError(f"request failed: {exc}") from exc

        if not 200 <= response.status_code < 300:
            logger.error("text_search failed: status=%s, body=%s", response.status_code, response.text[:500])
            raise GooglePlacesError(f"HTTP {response.status_code} - {response.text[:500]}")

        places = response.json().get("places") or []
        logger.info("Fetched %d places for query=%s", len(places), query)
        if self._cache is not None:
            self._cache.set(cache_key, list(places))
        return places
