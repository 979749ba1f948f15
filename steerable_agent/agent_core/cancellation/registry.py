from __future__ import annotations

"""Cancellation bookkeeping for several concurrent operations.

Where ``CancellationCoordinator`` serves the single run of one controller,
``CancellationRegistry`` tracks many operations keyed by an operation id: a
cancellation source per operation, the interruption context that cancelled it,
and any state saved for a later resume.
"""

import asyncio
import logging
import threading
from typing import Dict, List, Optional

from ..schemas.domain import InterruptionContext, InterruptionReason, InterruptionState
from .token import CancellationSource, CancellationToken

logger = logging.getLogger(__name__)


class OperationScope:
    """Cancellation scope of one registered operation."""

    def __init__(self, operation_id: str, source: CancellationSource, registry: "CancellationRegistry") -> None:
        self.operation_id = operation_id
        self._source = source
        self._registry = registry
        self._released = False

    @property
    def token(self) -> CancellationToken:
        return self._source.token

    @property
    def is_cancellation_requested(self) -> bool:
        return self._source.is_cancelled

    def raise_if_cancelled(self) -> None:
        self._source.token.raise_if_cancelled(self.operation_id)

    def release(self) -> None:
        if not self._released:
            self._released = True
            self._registry.cleanup(self.operation_id)

    def __enter__(self) -> "OperationScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class CancellationRegistry:
    """
    Registry of cancellable operations keyed by operation id.

    Notes:
        - ``create_scope`` replaces any previous source registered under the same id.
        - Saved states survive ``cleanup``; they are removed explicitly or by ``close``.
    """

    def __init__(self, *, grace_delay: float = 0.1) -> None:
        """
        Initialize an empty registry.

        Args:
            grace_delay: Seconds ``interrupt`` yields after cancelling, giving the operation a chance to wind down.
        """
        self._grace_delay = grace_delay
        self._lock = threading.Lock()
        self._sources: Dict[str, CancellationSource] = {}
        self._interruptions: Dict[str, InterruptionContext] = {}
        self._saved_states: Dict[str, InterruptionState] = {}
        self._closed = False

    def create_scope(self, operation_id: str) -> OperationScope:
        source = CancellationSource()
        with self._lock:
            if self._closed:
                raise RuntimeError("cancellation registry is closed")
            self._sources[operation_id] = source
        return OperationScope(operation_id, source, self)

    def get_token(self, operation_id: str) -> CancellationToken:
        """
        Return the token of a registered operation.

        Raises:
            KeyError: If no operation is registered under ``operation_id``.
        """
        token = self.try_get_token(operation_id)
        if token is None:
            raise KeyError(f"no cancellation token for operation: {operation_id}")
        return token

    def try_get_token(self, operation_id: str) -> Optional[CancellationToken]:
        with self._lock:
            source = self._sources.get(operation_id)
        return source.token if source is not None else None

    async def cancel(
        self,
        operation_id: str,
        reason: InterruptionReason = InterruptionReason.user_cancelled,
        message: Optional[str] = None,
        preserve_state: bool = True,
    ) -> None:
        context = InterruptionContext(
            reason=reason,
            message=message,
            source=type(self).__name__,
            preserve_state=preserve_state,
        )
        await self.interrupt(operation_id, context)

    async def interrupt(self, operation_id: str, context: InterruptionContext) -> None:
        """Record ``context`` for the operation and trip its source."""
        with self._lock:
            self._interruptions[operation_id] = context
            source = self._sources.get(operation_id)
        if source is None:
            logger.debug(f"Interrupt recorded for unregistered operation '{operation_id}'")
            return
        source.cancel()
        logger.info(f"Operation '{operation_id}' interrupted: reason={context.reason.value}")
        if self._grace_delay > 0:
            await asyncio.sleep(self._grace_delay)

    async def cancel_all(self, reason: InterruptionReason = InterruptionReason.user_cancelled) -> None:
        ids = self.active_operation_ids()
        await asyncio.gather(*(self.cancel(op_id, reason) for op_id in ids))

    def save_state(self, operation_id: str, state: InterruptionState) -> None:
        with self._lock:
            self._saved_states[operation_id] = state

    def get_saved_state(self, operation_id: str) -> Optional[InterruptionState]:
        with self._lock:
            return self._saved_states.get(operation_id)

    def remove_saved_state(self, operation_id: str) -> bool:
        with self._lock:
            return self._saved_states.pop(operation_id, None) is not None

    def is_cancelled(self, operation_id: str) -> bool:
        with self._lock:
            return operation_id in self._interruptions

    def get_interruption_context(self, operation_id: str) -> Optional[InterruptionContext]:
        with self._lock:
            return self._interruptions.get(operation_id)

    def cleanup(self, operation_id: str) -> None:
        with self._lock:
            self._sources.pop(operation_id, None)
            self._interruptions.pop(operation_id, None)

    def active_operation_ids(self) -> List[str]:
        with self._lock:
            return list(self._sources)

    def close(self) -> None:
        with self._lock:
            self._sources.clear()
            self._interruptions.clear()
            self._saved_states.clear()
            self._closed = True
