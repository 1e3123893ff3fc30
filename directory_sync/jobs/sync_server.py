"""HTTP entrypoint that triggers directory sync runs (Cloud Run friendly)."""

from __future__ import annotations

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict

from flask import Flask, jsonify, request

from directory_sync.core.cache import TTLCache
from directory_sync.core.config import ConfigError, get_settings
from directory_sync.core.run_log import append_run_log, build_failure_entry, build_success_entry
from directory_sync.jobs.sync_restaurants import DirectorySyncEngine

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
_executor = ThreadPoolExecutor(max_workers=1)
_run_lock = threading.Lock()
_last_run: Dict[str, Any] = {}
DEFAULT_SYNC_LOG_FILE = "logs/restaurant-sync.log"

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; only reads env-based settings."""
    try:
        settings = get_settings()
    except ConfigError as exc:
        return jsonify({"status": "misconfigured", "error": str(exc)}), 503
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "sync_running": _run_lock.locked(),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/sync")
def enqueue_sync() -> Any:
    """
    Start a sync run in the background.
    Optional JSON fields: batch_size (int), dry_run (bool), match_strategy ("first"|"best")
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    batch_size_raw = payload.get("batch_size")
    batch_size = None
    if batch_size_raw is not None:
        try:
            batch_size = int(batch_size_raw)
        except (TypeError, ValueError):
            return jsonify({"error": "batch_size must be numeric"}), 400
        if batch_size <= 0:
            return jsonify({"error": "batch_size must be positive"}), 400

    match_strategy = payload.get("match_strategy")
    if match_strategy is not None and match_strategy not in ("first", "best"):
        return jsonify({"error": "match_strategy must be 'first' or 'best'"}), 400

    try:
        get_settings()
    except ConfigError as exc:
        return jsonify({"error": str(exc)}), 503

    # One run per process; overlapping triggers are rejected.
    if not _run_lock.acquire(blocking=False):
        return jsonify({"error": "sync already running"}), 409

    job_args = dict(
        batch_size=batch_size,
        dry_run=bool(payload.get("dry_run", False)),
        match_strategy=match_strategy,
    )
    logger.info("Queueing directory sync: %s", job_args)
    try:
        _executor.submit(_run_job_safe, job_args)
    except RuntimeError:
        _run_lock.release()
        raise

    return jsonify({"data": {"status": "queued"}}), 202


@app.get("/sync/last")
def last_sync() -> Any:
    if not _last_run:
        return jsonify({"error": "no sync has completed yet"}), 404
    return jsonify({"data": dict(_last_run)}), 200


# ---------- Internals ----------


def _get_cache(ttl_seconds: float) -> TTLCache:
    """Provider response cache scoped to this app, rebuilt when the TTL changes."""
    cache = app.config.get("SYNC_CACHE")
    if cache is None or cache.ttl_seconds != ttl_seconds:
        cache = TTLCache(ttl_seconds)
        app.config["SYNC_CACHE"] = cache
    return cache


def _run_job_safe(job_args: Dict[str, Any]) -> None:
    log_file = DEFAULT_SYNC_LOG_FILE
    # The lock is held until the result is published.
    try:
        try:
            settings = get_settings()
            log_file = settings.sync_log_file
            engine = DirectorySyncEngine.from_settings(
                settings,
                cache=_get_cache(settings.cache_ttl_seconds),
                match_strategy=job_args.get("match_strategy"),
                dry_run=job_args.get("dry_run", False),
            )
            started = time.monotonic()
            summary = engine.run(batch_size=job_args.get("batch_size"))
            entry = build_success_entry(summary, time.monotonic() - started)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Directory sync failed: %s", exc)
            entry = build_failure_entry(exc)

        _last_run.clear()
        _last_run.update(entry)
        append_run_log(entry, log_file)
    finally:
        _run_lock.release()


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
