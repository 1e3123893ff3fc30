"""CLI job that reconciles Google Places listings with the restaurant directory."""

import argparse
import logging
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

from directory_sync.core.cache import TTLCache
from directory_sync.core.config import ConfigError, Settings, get_settings
from directory_sync.core.pacing import SyncPacer
from directory_sync.core.run_log import append_run_log, build_failure_entry, build_success_entry
from directory_sync.core.store import DirectoryStore, prepare_row
from directory_sync.etl.changes import changed_fields, is_significant
from directory_sync.etl.matching import IdentityResolver
from directory_sync.etl.transform import DEFAULT_MUNICIPALITY, to_canonical_restaurant
from directory_sync.models import (
    CanonicalRestaurant,
    DirectoryRecord,
    GeoPoint,
    IncomingListing,
    SyncState,
    SyncSummary,
)
from directory_sync.vendors.google_places import PlacesClient

logger = logging.getLogger(__name__)

DEFAULT_CUISINES = (
    "Italian",
    "Mexican",
    "Chinese",
    "Thai",
    "Indian",
    "Japanese",
    "BBQ",
    "Seafood",
    "American",
    "Pizza",
    "Steakhouse",
    "Mediterranean",
    "Vietnamese",
    "Korean",
    "Tex-Mex",
    "Cajun",
    "Soul Food",
    "Burger",
    "Breakfast",
    "Cafe",
)
GENERAL_QUERY_RESULTS = 20
CUISINE_QUERY_RESULTS = 10


class SyncAbortedError(RuntimeError):
    """Raised when a run cannot start reconciling (snapshot or provider unavailable)."""


class DirectorySyncEngine:
    """Pulls provider listings and applies the minimum writes to the directory.

    The store must expose ``fetch_all()``, ``create(restaurant)`` and
    ``update(record_id, fields)``; the provider must expose
    ``search_restaurants(cuisine, max_results)``.
    """

    def __init__(
        self,
        store: Any,
        places: Any,
        reference: GeoPoint,
        *,
        resolver: Optional[IdentityResolver] = None,
        pacer: Optional[SyncPacer] = None,
        cuisines: Sequence[str] = DEFAULT_CUISINES,
        batch_size: int = 10,
        municipality: str = DEFAULT_MUNICIPALITY,
        photo_api_key: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._store = store
        self._places = places
        self.reference = reference
        self._resolver = resolver or IdentityResolver()
        self._pacer = pacer or SyncPacer()
        self.cuisines = tuple(cuisines)
        self.batch_size = batch_size
        self.municipality = municipality
        self._photo_api_key = photo_api_key
        self.dry_run = dry_run
        self.state = SyncState.NOT_STARTED
        self.batch_position: Tuple[int, int] = (0, 0)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        cache: Optional[TTLCache] = None,
        match_strategy: Optional[str] = None,
        dry_run: bool = False,
    ) -> "DirectorySyncEngine":
        reference = GeoPoint(lat=settings.reference_lat, lng=settings.reference_lng)
        store = DirectoryStore(settings.store_url, settings.store_service_key)
        places = PlacesClient(
            settings.google_places_api_key,
            center=reference,
            radius_meters=settings.search_radius_meters,
            locality=settings.locality_query,
            cache=cache,
        )
        pacer = SyncPacer(
            inter_item_delay=settings.inter_item_delay,
            inter_batch_delay=settings.inter_batch_delay,
            inter_query_delay=settings.inter_query_delay,
        )
        return cls(
            store,
            places,
            reference,
            resolver=IdentityResolver(strategy=match_strategy or settings.match_strategy),
            pacer=pacer,
            batch_size=settings.batch_size,
            municipality=settings.municipality,
            photo_api_key=settings.google_places_api_key,
            dry_run=dry_run,
        )

    def adapt(self, listing: IncomingListing) -> CanonicalRestaurant:
        return to_canonical_restaurant(
            listing.raw,
            self.reference,
            cuisine_hint=listing.cuisine_hint,
            municipality=self.municipality,
            photo_api_key=self._photo_api_key,
        )

    def run(
        self,
        batch_size: Optional[int] = None,
        inter_item_delay: Optional[float] = None,
        inter_batch_delay: Optional[float] = None,
    ) -> SyncSummary:
        batch_size = self.batch_size if batch_size is None else batch_size
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        pacer = self._pacer.replace(inter_item_delay=inter_item_delay, inter_batch_delay=inter_batch_delay)
        logger.info("Starting restaurant synchronization (dry_run=%s)", self.dry_run)

        self.state = SyncState.FETCHING_EXISTING
        try:
            existing = self._store.fetch_all()
        except Exception as exc:  # noqa: BLE001
            self.state = SyncState.FAILED
            raise SyncAbortedError(f"Failed to fetch existing restaurants: {exc}") from exc
        logger.info("Found %d existing restaurants in directory", len(existing))

        self.state = SyncState.FETCHING_INCOMING
        incoming = self.fetch_incoming(pacer)
        logger.info("Fetched %d unique restaurants from Google Places", len(incoming))

        summary = SyncSummary()
        batches = [incoming[i : i + batch_size] for i in range(0, len(incoming), batch_size)]
        self.state = SyncState.RECONCILING
        for index, batch in enumerate(batches, start=1):
            self.batch_position = (index, len(batches))
            logger.info("Processing batch %d/%d (%d restaurants)", index, len(batches), len(batch))
            for position, listing in enumerate(batch):
                if position:
                    pacer.between_items()
                try:
                    self.process_listing(listing, existing, summary)
                except Exception as exc:  # noqa: BLE001
                    logger.error("Error processing restaurant %s: %s", listing.display_name, exc)
                    summary.errors += 1
            if index < len(batches):
                pacer.between_batches()

        self.state = SyncState.COMPLETED
        logger.info(
            "Results: %d created, %d updated, %d unchanged, %d errors",
            summary.created,
            summary.updated,
            summary.unchanged,
            summary.errors,
        )
        return summary

    def fetch_incoming(self, pacer: Optional[SyncPacer] = None) -> List[IncomingListing]:
        """One unfiltered query plus one per cuisine, merged without duplicates.

        Only the unfiltered query is fatal; a failing cuisine query is skipped.
        """
        pacer = pacer or self._pacer
        collected: List[IncomingListing] = []
        seen_ids: Dict[str, IncomingListing] = {}
        seen_restaurants: List[CanonicalRestaurant] = []

        try:
            general = self._places.search_restaurants(None, GENERAL_QUERY_RESULTS)
        except Exception as exc:  # noqa: BLE001
            self.state = SyncState.FAILED
            raise SyncAbortedError(f"Failed to reach Google Places: {exc}") from exc
        self._collect(general, None, collected, seen_ids, seen_restaurants)

        for cuisine in self.cuisines:
            pacer.between_queries()
            try:
                places = self._places.search_restaurants(cuisine, CUISINE_QUERY_RESULTS)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error fetching %s restaurants, skipping: %s", cuisine, exc)
                continue
            added = self._collect(places, cuisine, collected, seen_ids, seen_restaurants)
            logger.debug("Cuisine %s added %d new restaurants", cuisine, added)

        return collected

    def _collect(
        self,
        places: Sequence[Dict[str, Any]],
        cuisine_hint: Optional[str],
        collected: List[IncomingListing],
        seen_ids: Dict[str, IncomingListing],
        seen_restaurants: List[CanonicalRestaurant],
    ) -> int:
        added = 0
        for place in places or []:
            if not isinstance(place, dict):
                logger.debug("Skipping malformed place payload: %r", place)
                continue
            listing = IncomingListing(raw=place, cuisine_hint=cuisine_hint)
            external_id = listing.external_id
            if external_id and external_id in seen_ids:
                continue

            try:
                restaurant = self.adapt(listing)
                duplicate = not external_id and self._resolver.resolve(restaurant, seen_restaurants).matched
            except Exception as exc:  # noqa: BLE001
                # Kept so reconciliation reports it as a record error.
                logger.warning("Could not adapt listing %s: %s", listing.display_name, exc)
                restaurant, duplicate = None, False
            if duplicate:
                logger.debug("Skipping duplicate listing without id: %s", restaurant.name)
                continue

            if external_id:
                seen_ids[external_id] = listing
            if restaurant is not None:
                seen_restaurants.append(restaurant)
            collected.append(listing)
            added += 1
        return added

    def process_listing(
        self,
        listing: IncomingListing,
        existing: Sequence[DirectoryRecord],
        summary: SyncSummary,
    ) -> str:
        restaurant = self.adapt(listing)
        match = self._resolver.resolve(restaurant, existing)

        if not match.matched:
            if not self.dry_run:
                self._store.create(restaurant)
            logger.info("Created: %s", restaurant.name)
            summary.created += 1
            return "created"

        record = match.record
        if is_significant(record, restaurant):
            if not self.dry_run:
                self._store.update(record.record_id, prepare_row(restaurant))
            logger.info("Updated: %s (%s)", restaurant.name, ", ".join(changed_fields(record, restaurant)))
            summary.updated += 1
            return "updated"

        summary.unchanged += 1
        return "unchanged"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synchronize the restaurant directory with Google Places")
    parser.add_argument("--batch-size", dest="batch_size", type=int, help="Restaurants per batch")
    parser.add_argument(
        "--inter-item-delay",
        dest="inter_item_delay",
        type=float,
        help="Seconds to wait between restaurants",
    )
    parser.add_argument(
        "--inter-batch-delay",
        dest="inter_batch_delay",
        type=float,
        help="Seconds to wait between batches",
    )
    parser.add_argument(
        "--match-strategy",
        dest="match_strategy",
        choices=("first", "best"),
        help="Fuzzy identity resolution strategy",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        help="Reconcile and report without writing to the directory",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    engine = DirectorySyncEngine.from_settings(
        settings,
        cache=TTLCache(settings.cache_ttl_seconds),
        match_strategy=args.match_strategy,
        dry_run=args.dry_run,
    )

    started = time.monotonic()
    try:
        summary = engine.run(
            batch_size=args.batch_size,
            inter_item_delay=args.inter_item_delay,
            inter_batch_delay=args.inter_batch_delay,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Critical error during synchronization: %s", exc, exc_info=True)
        append_run_log(build_failure_entry(exc), settings.sync_log_file)
        raise SystemExit(1) from exc

    duration = time.monotonic() - started
    logger.info(
        "Synchronization complete in %.1fs: created=%d updated=%d unchanged=%d errors=%d total=%d",
        duration,
        summary.created,
        summary.updated,
        summary.unchanged,
        summary.errors,
        summary.total,
    )
    append_run_log(build_success_entry(summary, duration), settings.sync_log_file)

    if summary.errors:
        logger.warning("%d errors occurred during synchronization. Check logs for details.", summary.errors)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
