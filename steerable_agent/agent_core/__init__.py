"""Execution core of a steerable agent.

This package contains the machinery that lets a long-running agent loop be
stopped cooperatively, captured and continued later.

Design overview
---------------

- ``cancellation``: cancellation sources/tokens, the per-run
  ``CancellationCoordinator`` and a keyed ``CancellationRegistry``.
- ``hooks``: phase events and the ``HookPipeline`` that dispatches them.
- ``snapshot``: the ``SnapshotStore`` holding the current resumable snapshot
  and helpers for typed custom state.
- ``runtime``: the LangGraph driven ``ExecutionController``.
- ``schemas``: pydantic value objects shared by all of the above.

Cancellation is always cooperative. Nothing in this package stops a task or a
thread from the outside; work observes its token at suspension points.
"""

from .errors import (
    BusyError,
    ExecutionCoreError,
    InvalidStateError,
    ObserverFailureError,
    OperationCancelledError,
    WorkFailureError,
)
from .runtime import ControllerDeps, ExecutionController

__all__ = [
    "BusyError",
    "ControllerDeps",
    "ExecutionController",
    "ExecutionCoreError",
    "InvalidStateError",
    "ObserverFailureError",
    "OperationCancelledError",
    "WorkFailureError",
]
