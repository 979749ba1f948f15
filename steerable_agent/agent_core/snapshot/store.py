from __future__ import annotations

"""Snapshot store.

Holds at most one "current" ``InterruptionState`` per owner. A capture
overwrites the previous snapshot; a successful restore consumes it, so the
same snapshot is never replayed twice.
"""

import copy
import logging
import threading
from typing import Any, Callable, Dict, Optional, Union

from ..errors import InvalidStateError
from ..schemas.domain import InterruptionState, OperationProgress

logger = logging.getLogger(__name__)

ProgressSource = Callable[[], Union[OperationProgress, float]]
StateCollector = Callable[[Dict[str, Any]], None]
StateRestorer = Callable[[Dict[str, Any]], None]


def _percentage(value: Union[OperationProgress, float]) -> float:
    if isinstance(value, OperationProgress):
        return value.percentage
    return min(max(float(value), 0.0), 100.0)


class SnapshotStore:
    """
    Capture and restore point-in-time run snapshots.

    Notes:
        - Collector and restorer callbacks run outside the lock.
        - ``restore`` only clears the slot if it still holds the snapshot that
          was restored; a capture taken concurrently is kept.
    """

    def __init__(self, *, version: str = "1.0", lock: Optional[threading.RLock] = None) -> None:
        """
        Initialize an empty store.

        Args:
            version: Version tag stamped on captured snapshots.
            lock: Lock guarding the current snapshot slot. Controllers pass their own
                lock so the running flag and the slot share one lock.
        """
        self._version = version
        self._lock = lock if lock is not None else threading.RLock()
        self._current: Optional[InterruptionState] = None

    @property
    def current(self) -> Optional[InterruptionState]:
        with self._lock:
            return self._current

    def can_resume(self) -> bool:
        with self._lock:
            return self._current is not None

    def capture(
        self,
        operation_type: str,
        progress_source: Optional[ProgressSource] = None,
        collector: Optional[StateCollector] = None,
    ) -> InterruptionState:
        """
        Capture a new snapshot and make it current.

        Args:
            operation_type: Type identifier of the owning operation.
            progress_source: Returns the current progress (an ``OperationProgress`` or a percentage).
            collector: Writes custom state entries into the snapshot data map.

        Returns:
            The captured snapshot.
        """
        progress = _percentage(progress_source()) if progress_source is not None else 0.0
        data: Dict[str, Any] = {}
        if collector is not None:
            collector(data)
        state = InterruptionState(
            version=self._version,
            operation_type=operation_type,
            progress=progress,
            data=copy.deepcopy(data),
        )
        with self._lock:
            self._current = state
        logger.debug(f"Snapshot captured: id={state.id}, operation={operation_type}, progress={progress:.1f}")
        return state

    def claim(self, expected: Optional[InterruptionState] = None) -> InterruptionState:
        """
        Take the current snapshot out of the store ahead of a restore.

        A claimed snapshot can no longer be discarded or restored by anyone
        else; hand it back to ``restore`` to apply it.

        Args:
            expected: When given, the snapshot the caller means to claim.

        Raises:
            InvalidStateError: If there is no current snapshot or ``expected`` is not it.
        """
        with self._lock:
            state = self._current
            if state is None:
                raise InvalidStateError("no saved state to resume from")
            if expected is not None and expected.id != state.id:
                raise InvalidStateError(f"snapshot {expected.id} is not the current snapshot ({state.id})")
            self._current = None
        logger.debug(f"Snapshot claimed: id={state.id}")
        return state

    def restore(
        self, restorer: Optional[StateRestorer] = None, claimed: Optional[InterruptionState] = None
    ) -> InterruptionState:
        """
        Hand the current snapshot's data to ``restorer`` and consume the snapshot.

        Args:
            restorer: Receives a deep copy of the snapshot data map.
            claimed: A snapshot previously taken with ``claim``. If the restorer
                fails it is put back, unless a newer snapshot was captured meanwhile.

        Returns:
            The snapshot that was restored.

        Raises:
            InvalidStateError: If there is no current snapshot.
        """
        if claimed is not None:
            state = claimed
        else:
            with self._lock:
                state = self._current
            if state is None:
                raise InvalidStateError("no saved state to resume from")
        if restorer is not None:
            try:
                restorer(copy.deepcopy(state.data))
            except Exception:
                if claimed is not None:
                    with self._lock:
                        if self._current is None:
                            self._current = claimed
                raise
        if claimed is None:
            with self._lock:
                if self._current is state:
                    self._current = None
        logger.debug(f"Snapshot restored and consumed: id={state.id}")
        return state

    def discard(self) -> Optional[InterruptionState]:
        """Drop the current snapshot, returning it if there was one."""
        with self._lock:
            state, self._current = self._current, None
        return state
