"""Configuration helpers for the restaurant directory sync.

Credentials come from the environment only: the directory store URL and its
service key, and the Google Places API key. All three are checked before any
network call is made.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    store_url: str
    store_service_key: str
    google_places_api_key: str
    batch_size: int = 10
    inter_item_delay: float = 0.1
    inter_batch_delay: float = 0.5
    inter_query_delay: float = 0.1
    reference_lat: float = 29.7859
    reference_lng: float = -95.8244
    search_radius_meters: int = 15000
    municipality: str = "Katy"
    locality_query: str = "Katy Texas"
    match_strategy: str = "first"
    cache_ttl_seconds: float = 0.0
    sync_log_file: str = "logs/restaurant-sync.log"
    worker_port: int = 9000


def _get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigError(f"{name} must be set in the environment for the directory sync to run.")
    return value


def _get_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}")
    return value


def _get_float(name: str, default: float, minimum: float | None = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load, validate and cache sync settings to avoid repeated env lookups."""
    # .env.local wins because load_dotenv never overrides an existing variable.
    load_dotenv(".env.local")
    load_dotenv()

    store_url = _get_required_env("DIRECTORY_STORE_URL").rstrip("/")
    store_service_key = _get_required_env("DIRECTORY_STORE_SERVICE_KEY")
    google_places_api_key = _get_required_env("GOOGLE_PLACES_API_KEY")

    match_strategy = os.getenv("SYNC_MATCH_STRATEGY", "first").strip().lower() or "first"
    if match_strategy not in {"first", "best"}:
        raise ConfigError(f"SYNC_MATCH_STRATEGY must be 'first' or 'best', got {match_strategy!r}")

    settings = Settings(
        store_url=store_url,
        store_service_key=store_service_key,
        google_places_api_key=google_places_api_key,
        batch_size=_get_int("SYNC_BATCH_SIZE", 10, minimum=1),
        inter_item_delay=_get_float("SYNC_INTER_ITEM_DELAY", 0.1),
        inter_batch_delay=_get_float("SYNC_INTER_BATCH_DELAY", 0.5),
        inter_query_delay=_get_float("SYNC_INTER_QUERY_DELAY", 0.1),
        reference_lat=_get_float("SYNC_REFERENCE_LAT", 29.7859, minimum=None),
        reference_lng=_get_float("SYNC_REFERENCE_LNG", -95.8244, minimum=None),
        search_radius_meters=_get_int("SYNC_SEARCH_RADIUS_METERS", 15000, minimum=1),
        municipality=os.getenv("SYNC_MUNICIPALITY") or "Katy",
        locality_query=os.getenv("SYNC_LOCALITY_QUERY") or "Katy Texas",
        match_strategy=match_strategy,
        cache_ttl_seconds=_get_float("SYNC_CACHE_TTL_SECONDS", 0.0),
        sync_log_file=os.getenv("SYNC_LOG_FILE") or "logs/restaurant-sync.log",
        worker_port=_get_int("WORKER_PORT", 9000, minimum=1),
    )

    if settings.cache_ttl_seconds > 0:
        logger.info("Provider response cache enabled (ttl=%.0fs)", settings.cache_ttl_seconds)
    return settings
