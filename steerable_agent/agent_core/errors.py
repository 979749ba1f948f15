"""Error types for the execution core.

Defines a small hierarchy of exceptions raised by the controller and its
collaborators to signal contract violations (busy controller, invalid state),
observer failures and failures of the black-box reasoning/acting steps.

``OperationCancelledError`` is not a failure: it is the signal raised at a
suspension point once cancellation has been observed, and the controller turns
it into the Interrupted outcome instead of surfacing it.
"""

from __future__ import annotations

from typing import Optional


class ExecutionCoreError(Exception):
    """Base error for all execution core exceptions."""


class BusyError(ExecutionCoreError):
    """Raised when a run is submitted while another one is still in flight."""

    def __init__(self, agent_id: str, run_id: Optional[str] = None) -> None:
        self.agent_id = agent_id
        self.run_id = run_id
        suffix = f" (run '{run_id}')" if run_id else ""
        super().__init__(f"Controller '{agent_id}' is already running{suffix}")


class InvalidStateError(ExecutionCoreError):
    """Raised when an operation is not allowed in the current state."""


class ObserverFailureError(ExecutionCoreError):
    """Raised when a hook handler fails during a phase dispatch."""

    def __init__(self, hook_name: str, phase: str, message: str) -> None:
        self.hook_name = hook_name
        self.phase = phase
        super().__init__(f"Hook '{hook_name}' failed during '{phase}': {message}")


class WorkFailureError(ExecutionCoreError):
    """Raised when the reasoning or acting step fails."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"{step} step failed: {message}")


class OperationCancelledError(ExecutionCoreError):
    """Raised at a suspension point once cancellation has been requested."""

    def __init__(self, operation_name: Optional[str] = None) -> None:
        self.operation_name = operation_name
        if operation_name:
            super().__init__(f"Operation '{operation_name}' was cancelled")
        else:
            super().__init__("Operation was cancelled")
