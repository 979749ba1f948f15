from __future__ import annotations

"""Cooperative cancellation primitives.

A ``CancellationSource`` owns a cancellation flag and hands out read-only
``CancellationToken`` views of it. Work that wants to be interruptible checks
the token at its own suspension points; nothing here ever stops a thread or a
task from the outside.

Sources can be linked: ``link_tokens`` returns a source that trips as soon as
any of its parents does, which lets a run observe both an internally owned
signal and a caller supplied one through a single token.

All operations are thread-safe. Callbacks registered on a token run on the
thread that calls ``cancel()``, outside of any internal lock.
"""

import logging
import threading
from typing import Callable, List, Optional, Sequence

from ..errors import OperationCancelledError

logger = logging.getLogger(__name__)

CancelCallback = Callable[[], None]


class CancellationRegistration:
    """Handle returned by ``CancellationToken.register``."""

    def __init__(self, source: "CancellationSource", callback: CancelCallback) -> None:
        self._source = source
        self._callback = callback
        self._active = True

    def unregister(self) -> None:
        if self._active:
            self._active = False
            self._source._remove_callback(self._callback)


class CancellationToken:
    """Read-only view over a ``CancellationSource``."""

    def __init__(self, source: Optional["CancellationSource"]) -> None:
        self._source = source

    @classmethod
    def none(cls) -> "CancellationToken":
        """Return a token that is never cancelled."""
        return cls(None)

    @property
    def is_cancelled(self) -> bool:
        return self._source is not None and self._source.is_cancelled

    @property
    def can_be_cancelled(self) -> bool:
        return self._source is not None

    def raise_if_cancelled(self, operation_name: Optional[str] = None) -> None:
        """
        Raise ``OperationCancelledError`` when cancellation has been requested.

        Args:
            operation_name: Optional name of the suspension point, included in the error message.
        """
        if self.is_cancelled:
            raise OperationCancelledError(operation_name)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or until ``timeout`` seconds elapse. Returns the cancelled flag."""
        if self._source is None:
            if timeout is not None:
                threading.Event().wait(timeout)
            return False
        return self._source._event.wait(timeout)

    def register(self, callback: CancelCallback) -> CancellationRegistration:
        """
        Register a callback fired once when the token is cancelled.

        If the token is already cancelled the callback runs immediately on the
        calling thread.
        """
        if self._source is None:
            return CancellationRegistration(_NEVER, callback)
        return self._source._add_callback(callback)


class CancellationSource:
    """Owner of a cancellation flag.

    ``cancel`` is idempotent: callbacks fire only on the first call. ``reset``
    re-arms the source so it can be reused for another run; callbacks that
    were already fired are not re-registered.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[CancelCallback] = []
        self._timer: Optional[threading.Timer] = None

    @property
    def token(self) -> CancellationToken:
        return CancellationToken(self)

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks = list(self._callbacks)
            self._callbacks.clear()
        for cb in callbacks:
            try:
                cb()
            except Exception:
                logger.exception("Cancellation callback raised")

    def reset(self) -> None:
        with self._lock:
            self._event.clear()
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def cancel_after(self, seconds: float) -> None:
        """Arm a timer that cancels the source after ``seconds``. Re-arming replaces the previous timer."""
        timer = threading.Timer(seconds, self.cancel)
        timer.daemon = True
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = timer
        timer.start()

    def _add_callback(self, callback: CancelCallback) -> CancellationRegistration:
        with self._lock:
            fire_now = self._event.is_set()
            if not fire_now:
                self._callbacks.append(callback)
        if fire_now:
            callback()
        return CancellationRegistration(self, callback)

    def _remove_callback(self, callback: CancelCallback) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass


_NEVER = CancellationSource()


class LinkedCancellationSource(CancellationSource):
    """Source that trips when any of its parent tokens trips.

    ``close`` detaches from the parents. It is idempotent and should be called
    once the linked token is no longer observed so parents do not keep
    references to it.
    """

    def __init__(self, parents: Sequence[CancellationToken]) -> None:
        super().__init__()
        self._parents = tuple(parents)
        self._registrations: List[CancellationRegistration] = []
        self._closed = False
        for parent in self._parents:
            self._registrations.append(parent.register(self.cancel))

    @property
    def parents(self) -> Sequence[CancellationToken]:
        return self._parents

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            registrations = list(self._registrations)
            self._registrations.clear()
        for reg in registrations:
            reg.unregister()


def link_tokens(*tokens: Optional[CancellationToken]) -> LinkedCancellationSource:
    """
    Create a source cancelled as soon as any of ``tokens`` is.

    ``None`` entries and never-cancelled tokens are ignored. If one of the
    tokens is already cancelled the returned source is cancelled immediately.
    """
    parents = [t for t in tokens if t is not None and t.can_be_cancelled]
    return LinkedCancellationSource(parents)
