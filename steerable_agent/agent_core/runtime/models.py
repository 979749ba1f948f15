from __future__ import annotations

"""Black-box boundary types, dependency bundle and LangGraph state types.

The controller is designed to be dependency-injected.

- ``Reasoner`` and ``Actor`` are the black boxes the controller drives. Both
  receive the run's cancellation token and are expected to check it at their
  own suspension points.
- ``ControllerDeps`` collects the black boxes together with the optional hook
  pipeline, custom-state callbacks and progress collaborators.
- ``_GraphState`` is the routing state passed between LangGraph nodes; the
  bookkeeping that must survive an interruption lives in ``_RunRecord`` so it
  can be snapshotted at any suspension point.
"""

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    NotRequired,
    Optional,
    Protocol,
    Required,
    Tuple,
    TypedDict,
)

from pydantic import Field

from ..cancellation import CancellationToken
from ..hooks import HookPipeline
from ..schemas.base import BaseSchema
from ..schemas.domain import OperationProgress
from ..snapshot import StateCollector, StateRestorer

ProgressSink = Callable[[OperationProgress], None]


class ActionRequest(BaseSchema):
    """Action the reasoning step asks the acting step to perform."""

    name: str
    parameters: Any = None


class ActionOutcome(BaseSchema):
    result: Any = None
    success: bool = True


class ReasoningContext(BaseSchema):
    """Input of one reasoning step."""

    agent_id: str
    message: Any = None
    iteration: int
    history: Tuple[str, ...] = ()
    progress: float = 0.0


class ReasoningOutput(BaseSchema):
    """Result of one reasoning step.

    - ``finished`` ends the run; ``output`` (or ``result`` when unset) becomes
      the run output.
    - ``next_action`` asks for an acting phase in this iteration.
    - ``progress`` optionally reports a percentage; otherwise the controller
      derives it from completed iterations.
    """

    result: str = ""
    next_action: Optional[ActionRequest] = None
    finished: bool = False
    output: Any = None
    progress: Optional[float] = Field(default=None, ge=0.0, le=100.0)


class Reasoner(Protocol):
    """Protocol for the reasoning black box."""

    async def reason(self, context: ReasoningContext, token: CancellationToken) -> ReasoningOutput: ...


class Actor(Protocol):
    """Protocol for the acting black box."""

    async def act(self, action: ActionRequest, token: CancellationToken) -> ActionOutcome: ...


@dataclass(frozen=True)
class ControllerDeps:
    """Dependency bundle for ``ExecutionController``.

    This object is typically constructed by the concrete agent built on the
    controller. It holds:

    - the reasoning and acting black boxes,
    - the hook pipeline (a private one is created when omitted),
    - the custom-state collector/restorer pair used by snapshots,
    - an optional progress source overriding the controller's own tracker,
      and an optional progress sink receiving every progress update.
    """

    reasoner: Reasoner
    actor: Actor

    hooks: Optional[HookPipeline] = None

    state_collector: Optional[StateCollector] = None
    state_restorer: Optional[StateRestorer] = None

    progress_source: Optional[Callable[[], OperationProgress]] = None
    progress_sink: Optional[ProgressSink] = None


@dataclass
class _RunRecord:
    """Mutable bookkeeping of the in-flight run.

    Everything needed to resume is serialized into the snapshot by
    ``to_snapshot_data``; nothing else is read on resume.
    """

    run_id: str
    message: Any = None
    completed_iterations: int = 0
    history: List[str] = field(default_factory=list)
    pending_history: List[str] = field(default_factory=list)
    finished: bool = False
    reached_max_iterations: bool = False
    output: Any = None
    reasoning: Optional[ReasoningOutput] = None
    action_outcome: Optional[ActionOutcome] = None

    @property
    def current_iteration(self) -> int:
        return self.completed_iterations + 1

    def to_snapshot_data(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "completed_iterations": self.completed_iterations,
            "history": list(self.history),
        }

    @classmethod
    def from_snapshot_data(cls, run_id: str, data: Dict[str, Any]) -> "_RunRecord":
        return cls(
            run_id=run_id,
            message=data.get("message"),
            completed_iterations=int(data.get("completed_iterations") or 0),
            history=list(data.get("history") or []),
        )


class _GraphState(TypedDict):
    """Routing state for a single controller run.

    Required keys:

    - ``run_id``: current run identifier.

    Optional keys:

    - ``pending_action``: action requested by the last reasoning step.
    - ``_route``: routing decision of the last boundary node.
    """

    run_id: Required[str]
    pending_action: NotRequired[Optional[ActionRequest]]
    _route: NotRequired[str]
