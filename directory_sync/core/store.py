"""REST gateway to the restaurant directory store."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from directory_sync.models import HOURS_NOT_AVAILABLE, CanonicalRestaurant, DirectoryRecord

logger = logging.getLogger(__name__)

_TABLE_PATH = "/rest/v1/restaurants"


class DirectoryStoreError(RuntimeError):
    """Raised when the directory store answers with a non-2xx response."""


def build_session() -> requests.Session:
    """Session that retries idempotent reads on transient 5xx errors.

    Writes are never retried so a timed-out POST cannot create a duplicate.
    """
    session = requests.Session()
    retries = Retry(
        total=3,
        backoff_factor=1,
        status_forcelist=(500, 502, 503, 504),
        allowed_methods=("GET",),
    )
    session.mount("http://", HTTPAdapter(max_retries=retries))
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def prepare_row(restaurant: CanonicalRestaurant, synced_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Map a canonical restaurant to the store's column layout."""
    synced_at = synced_at or datetime.now(timezone.utc)
    coordinates = restaurant.coordinates
    hours_text = restaurant.hours_text
    if hours_text == HOURS_NOT_AVAILABLE:
        hours_text = None

    return {
        "name": restaurant.name,
        "address": restaurant.address,
        "cuisine": list(restaurant.cuisine),
        "price_range": restaurant.price_tier,
        "rating": restaurant.rating,
        "description": restaurant.description,
        "phone": restaurant.phone,
        "website": restaurant.website,
        "opening_hours": hours_text,
        "distance": restaurant.distance_from_reference,
        "google_place_id": restaurant.external_id,
        "latitude": coordinates.lat if coordinates else None,
        "longitude": coordinates.lng if coordinates else None,
        "total_reviews_count": restaurant.review_count,
        "types": list(restaurant.types),
        "image": restaurant.photo_url,
        "popular": restaurant.popular,
        "neighborhood": restaurant.neighborhood,
        "last_updated_from_google": synced_at.isoformat(),
    }


class DirectoryStore:
    """Reads the full directory snapshot and issues create/update calls."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ) -> None:
        if not base_url or not service_key:
            raise ValueError("base_url and service_key are required for the directory store")
        self.base_url = base_url.rstrip("/")
        self._session = session or build_session()
        self._timeout = timeout
        self._headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    @property
    def table_url(self) -> str:
        return f"{self.base_url}{_TABLE_PATH}"

    def fetch_all(self) -> List[DirectoryRecord]:
        response = self._session.get(
            self.table_url,
            params={"select": "*"},
            headers=self._headers,
            timeout=self._timeout,
        )
        self._raise_for_status(response, "fetch existing restaurants")
        rows = response.json() or []
        return [DirectoryRecord.from_row(row) for row in rows]

    def create(self, restaurant: CanonicalRestaurant) -> None:
        row = prepare_row(restaurant)
        if not row["name"]:
            raise ValueError("name is required to create a restaurant")
        response = self._session.post(
            self.table_url,
            json=row,
            headers=self._headers,
            timeout=self._timeout,
        )
        self._raise_for_status(response, "create restaurant")
        logger.debug("Created restaurant %s", restaurant.name)

    def update(self, record_id: Any, fields: Dict[str, Any]) -> None:
        if record_id is None:
            raise ValueError("record_id is required for updates")
        response = self._session.patch(
            self.table_url,
            params={"id": f"eq.{record_id}"},
            json=fields,
            headers=self._headers,
            timeout=self._timeout,
        )
        self._raise_for_status(response, "update restaurant")
        logger.debug("Updated restaurant id=%s", record_id)

    @staticmethod
    def _raise_for_status(response: requests.Response, action: str) -> None:
        if 200 <= response.status_code < 300:
            return
        body = (response.text or "")[:500]
        raise DirectoryStoreError(f"Failed to {action}: HTTP {response.status_code} - {body}")
