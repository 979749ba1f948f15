"""Cooperative cancellation for agent runs.

- ``CancellationSource`` / ``CancellationToken``: a thread-safe flag and its
  read-only view, with ``link_tokens`` to merge several signals into one.
- ``CancellationCoordinator``: the per-controller coordinator that links the
  internal source with a caller supplied token for the lifetime of a run.
- ``CancellationRegistry``: bookkeeping for many operations keyed by id.
"""

from .coordinator import CancellationCoordinator, CancellationScope
from .helpers import check_cancellation, combine_tokens, timeout_token, with_periodic_check
from .registry import CancellationRegistry, OperationScope
from .token import (
    CancellationRegistration,
    CancellationSource,
    CancellationToken,
    LinkedCancellationSource,
    link_tokens,
)

__all__ = [
    "CancellationCoordinator",
    "CancellationScope",
    "CancellationRegistry",
    "OperationScope",
    "CancellationRegistration",
    "CancellationSource",
    "CancellationToken",
    "LinkedCancellationSource",
    "link_tokens",
    "check_cancellation",
    "combine_tokens",
    "timeout_token",
    "with_periodic_check",
]
