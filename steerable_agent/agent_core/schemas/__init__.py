"""Schemas and value objects for the execution core."""

from .base import BaseSchema, FrozenSchema
from .domain import (
    ControllerState,
    ExecutionResult,
    InterruptionContext,
    InterruptionReason,
    InterruptionState,
    InterruptOutcome,
    OperationProgress,
    RunOutcome,
    StateTransition,
)

__all__ = [
    "BaseSchema",
    "FrozenSchema",
    "ControllerState",
    "ExecutionResult",
    "InterruptionContext",
    "InterruptionReason",
    "InterruptionState",
    "InterruptOutcome",
    "OperationProgress",
    "RunOutcome",
    "StateTransition",
]
