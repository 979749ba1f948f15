from __future__ import annotations

"""Per-run cancellation coordination.

``CancellationCoordinator`` owns one internal cancellation source for the
lifetime of a controller and, for each run, links it with the optional token
supplied by the caller. The run observes a single token; the controller can
trip it through ``request_cancel`` and the caller through its own token.
"""

import logging
import threading
from typing import Optional

from ..errors import InvalidStateError
from .token import CancellationSource, CancellationToken, link_tokens

logger = logging.getLogger(__name__)


class CancellationScope:
    """Linked cancellation signal for one run.

    The scope is valid until released. ``release`` is idempotent so it can be
    called from every exit path of a run, and the scope can be used as a
    context manager.
    """

    def __init__(
        self,
        coordinator: "CancellationCoordinator",
        internal: CancellationToken,
        external: Optional[CancellationToken],
    ) -> None:
        self._coordinator = coordinator
        self._internal = internal
        self._external = external
        self._linked = link_tokens(internal, external)
        self._released = False

    @property
    def token(self) -> CancellationToken:
        return self._linked.token

    @property
    def is_cancellation_requested(self) -> bool:
        return self._linked.is_cancelled

    @property
    def internal_requested(self) -> bool:
        """True when the coordinator's own source was tripped."""
        return self._internal.is_cancelled

    @property
    def external_requested(self) -> bool:
        """True when the caller supplied token was tripped."""
        return self._external is not None and self._external.is_cancelled

    @property
    def is_released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._linked.close()
        self._coordinator._on_scope_released(self)

    def __enter__(self) -> "CancellationScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class CancellationCoordinator:
    """Merge the internal cancellation source with an external one per run.

    Notes:
        - Only one scope can be active at a time; the controller enforces a
          single in-flight run and this class double checks it.
        - ``request_cancel`` leaves the internal source tripped until
          ``reset`` is called, which is only allowed without an active scope.
    """

    def __init__(self) -> None:
        self._internal = CancellationSource()
        self._lock = threading.Lock()
        self._active: Optional[CancellationScope] = None

    def begin_scope(self, external_token: Optional[CancellationToken] = None) -> CancellationScope:
        """
        Open the cancellation scope of a run.

        Args:
            external_token: Optional caller supplied token linked with the internal source.

        Returns:
            The scope whose ``token`` the run observes.

        Raises:
            InvalidStateError: If a scope is already active.
        """
        with self._lock:
            if self._active is not None:
                raise InvalidStateError("a cancellation scope is already active")
            scope = CancellationScope(self, self._internal.token, external_token)
            self._active = scope
        return scope

    def request_cancel(self) -> None:
        if not self._internal.is_cancelled:
            logger.debug("Cancellation requested")
        self._internal.cancel()

    def reset(self) -> None:
        """
        Clear the internal source so the coordinator can serve another run.

        Raises:
            InvalidStateError: If a scope is still active.
        """
        with self._lock:
            if self._active is not None:
                raise InvalidStateError("cannot reset cancellation while a scope is active")
            self._internal.reset()

    @property
    def is_cancellation_requested(self) -> bool:
        return self.token().is_cancelled

    @property
    def has_active_scope(self) -> bool:
        with self._lock:
            return self._active is not None

    def token(self) -> CancellationToken:
        """Return the active scope's linked token, or the internal token when idle."""
        with self._lock:
            scope = self._active
        if scope is not None:
            return scope.token
        return self._internal.token

    def _on_scope_released(self, scope: CancellationScope) -> None:
        with self._lock:
            if self._active is scope:
                self._active = None
