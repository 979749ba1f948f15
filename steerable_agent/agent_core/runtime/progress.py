from __future__ import annotations

"""Run progress bookkeeping."""

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, Optional

from ..schemas.domain import OperationProgress

logger = logging.getLogger(__name__)


def _clamp(value: float) -> float:
    return min(max(float(value), 0.0), 100.0)


class ProgressTracker:
    """Keep the progress of one run and push updates to a sink.

    The percentage never decreases within a run: lower values are ignored.
    When ``total_items`` is known the remaining time is estimated from the
    average time spent per processed item since ``start``.
    """

    def __init__(self, sink: Optional[Callable[[OperationProgress], None]] = None) -> None:
        self._sink = sink
        self._lock = threading.Lock()
        self._progress = OperationProgress()
        self._started_at = time.monotonic()
        self._start_items = 0

    def start(self, percentage: float = 0.0, total_items: Optional[int] = None, items_processed: int = 0) -> None:
        """Reset the tracker for a new run, optionally continuing from ``percentage``."""
        with self._lock:
            self._progress = OperationProgress(
                percentage=_clamp(percentage),
                items_processed=items_processed,
                total_items=total_items,
            )
            self._started_at = time.monotonic()
            self._start_items = items_processed

    def snapshot(self) -> OperationProgress:
        with self._lock:
            return self._progress

    @property
    def percentage(self) -> float:
        return self.snapshot().percentage

    def update(
        self,
        percentage: Optional[float] = None,
        current_step: Optional[str] = None,
        items_processed: Optional[int] = None,
    ) -> OperationProgress:
        with self._lock:
            current = self._progress
            pct = current.percentage if percentage is None else max(current.percentage, _clamp(percentage))
            items = current.items_processed if items_processed is None else max(items_processed, 0)
            progress = OperationProgress(
                percentage=pct,
                current_step=current_step if current_step is not None else current.current_step,
                estimated_time_remaining=self._estimate(items, current.total_items),
                items_processed=items,
                total_items=current.total_items,
            )
            self._progress = progress
        if self._sink is not None:
            try:
                self._sink(progress)
            except Exception:
                logger.exception("Progress sink raised")
        return progress

    def _estimate(self, items: int, total: Optional[int]) -> Optional[timedelta]:
        done = items - self._start_items
        if total is None or done <= 0:
            return None
        per_item = (time.monotonic() - self._started_at) / done
        return timedelta(seconds=per_item * max(total - items, 0))
