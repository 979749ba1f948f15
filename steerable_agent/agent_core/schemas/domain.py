from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from .base import BaseSchema, FrozenSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InterruptionReason(str, Enum):
    user_cancelled = "user_cancelled"
    timeout = "timeout"
    error = "error"
    external_signal = "external_signal"
    resource_limit = "resource_limit"
    completed = "completed"


class ControllerState(str, Enum):
    idle = "idle"
    running = "running"
    interrupted = "interrupted"
    failed = "failed"
    completed = "completed"


class RunOutcome(str, Enum):
    completed = "completed"
    interrupted = "interrupted"


class InterruptOutcome(str, Enum):
    not_running = "not_running"
    settled = "settled"
    stalled = "stalled"


class InterruptionContext(FrozenSchema):
    """Why and how a run is being interrupted.

    Built by whoever requests the interruption and passed by value through the
    interrupt path. ``preserve_state`` asks the controller to capture a
    snapshot before the run settles as Interrupted.
    """

    reason: InterruptionReason
    timestamp: datetime = Field(default_factory=_utc_now)
    message: Optional[str] = None
    error: Optional[str] = None
    source: Optional[str] = None
    preserve_state: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)


class InterruptionState(FrozenSchema):
    """Point-in-time snapshot of a run, sufficient to resume it."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    version: str = "1.0"
    captured_at: datetime = Field(default_factory=_utc_now)
    operation_type: str
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    data: Dict[str, Any] = Field(default_factory=dict)


class OperationProgress(FrozenSchema):
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    current_step: Optional[str] = None
    estimated_time_remaining: Optional[timedelta] = None
    items_processed: int = Field(default=0, ge=0)
    total_items: Optional[int] = Field(default=None, ge=0)


class StateTransition(FrozenSchema):
    previous: ControllerState
    current: ControllerState
    run_id: Optional[str] = None
    at: datetime = Field(default_factory=_utc_now)


class ExecutionResult(BaseSchema):
    """Successful outcome of ``execute``/``resume``.

    ``status`` is ``completed`` when the reasoning loop finished (or hit the
    iteration bound) and ``interrupted`` when cancellation was observed. Failed
    runs raise instead of returning a result.
    """

    run_id: str
    status: RunOutcome
    output: Any = None
    iterations: int = 0
    progress: float = 0.0
    reached_max_iterations: bool = False
    interruption: Optional[InterruptionContext] = None
    snapshot_id: Optional[str] = None
    history: List[str] = Field(default_factory=list)

    @property
    def interrupted(self) -> bool:
        return self.status == RunOutcome.interrupted
