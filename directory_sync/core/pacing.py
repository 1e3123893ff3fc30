"""Deliberate pauses that keep the sync under the provider's rate limit."""

import time
from typing import Callable, Optional


class SyncPacer:
    """Owns every sleep the sync performs.

    The scheduler calls these hooks only between consecutive records, batches
    or provider queries, so a run never sleeps after its last unit of work.
    """

    def __init__(
        self,
        inter_item_delay: float = 0.1,
        inter_batch_delay: float = 0.5,
        inter_query_delay: float = 0.1,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        for name, value in (
            ("inter_item_delay", inter_item_delay),
            ("inter_batch_delay", inter_batch_delay),
            ("inter_query_delay", inter_query_delay),
        ):
            if value < 0:
                raise ValueError(f"{name} must be >= 0")
        self.inter_item_delay = inter_item_delay
        self.inter_batch_delay = inter_batch_delay
        self.inter_query_delay = inter_query_delay
        self._sleep = sleep

    def replace(
        self,
        inter_item_delay: Optional[float] = None,
        inter_batch_delay: Optional[float] = None,
    ) -> "SyncPacer":
        """Copy with some delays overridden, sharing the same sleep function."""
        return SyncPacer(
            inter_item_delay=self.inter_item_delay if inter_item_delay is None else inter_item_delay,
            inter_batch_delay=self.inter_batch_delay if inter_batch_delay is None else inter_batch_delay,
            inter_query_delay=self.inter_query_delay,
            sleep=self._sleep,
        )

    def between_items(self) -> None:
        self._pause(self.inter_item_delay)

    def between_batches(self) -> None:
        self._pause(self.inter_batch_delay)

    def between_queries(self) -> None:
        self._pause(self.inter_query_delay)

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self._sleep(seconds)
