"""Append-only JSON lines log of sync runs."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from directory_sync.models import SyncSummary

logger = logging.getLogger(__name__)


def build_success_entry(summary: SyncSummary, duration_seconds: float, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat(),
        "durationSeconds": round(duration_seconds, 1),
        "results": summary.as_dict(),
        "success": summary.errors == 0,
    }


def build_failure_entry(error: BaseException, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat(),
        "error": str(error),
        "success": False,
    }


def append_run_log(entry: Dict[str, Any], path: str) -> bool:
    """Write one entry; failures are only warned so they never fail a run."""
    try:
        log_path = Path(path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(entry, ensure_ascii=False) + "\n")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("Failed to write sync log to %s: %s", path, exc)
        return False
    return True
