"""Hook phases and phase events.

Every iteration of the agent loop crosses four boundaries. At each boundary the
controller builds a fresh event for that phase, hands it to the
``HookPipeline`` and discards it after the dispatch. Events form a tagged union
on ``phase`` so handlers and the pipeline dispatch on the tag, not on the
runtime class.

``should_stop`` is the only field observers are expected to mutate. Setting it
short-circuits the remaining observers of the dispatch and makes the controller
treat the run as cancelled. ``stop_reason`` optionally classifies the stop
(defaults to an external signal).
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from ..schemas.base import BaseSchema
from ..schemas.domain import InterruptionReason


class HookPhase(str, Enum):
    pre_reasoning = "pre_reasoning"
    post_reasoning = "post_reasoning"
    pre_acting = "pre_acting"
    post_acting = "post_acting"


class HookEventBase(BaseSchema):
    agent_id: str = ""
    message: Any = None
    should_stop: bool = False
    stop_reason: Optional[InterruptionReason] = None

    def stop(self, reason: Optional[InterruptionReason] = None) -> None:
        """Ask the pipeline to skip the remaining observers and the controller to stop the run."""
        self.should_stop = True
        if reason is not None:
            self.stop_reason = reason


class PreReasoningEvent(HookEventBase):
    phase: Literal[HookPhase.pre_reasoning] = HookPhase.pre_reasoning
    context: str = ""


class PostReasoningEvent(HookEventBase):
    phase: Literal[HookPhase.post_reasoning] = HookPhase.post_reasoning
    reasoning_result: str = ""


class PreActingEvent(HookEventBase):
    phase: Literal[HookPhase.pre_acting] = HookPhase.pre_acting
    action: str = ""
    parameters: Any = None


class PostActingEvent(HookEventBase):
    phase: Literal[HookPhase.post_acting] = HookPhase.post_acting
    action: str = ""
    result: Any = None
    success: bool = False


HookEvent = Annotated[
    Union[PreReasoningEvent, PostReasoningEvent, PreActingEvent, PostActingEvent],
    Field(discriminator="phase"),
]

hook_event_adapter: TypeAdapter[HookEvent] = TypeAdapter(HookEvent)
