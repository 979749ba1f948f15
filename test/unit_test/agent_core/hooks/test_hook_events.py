"""Unit tests for hook phase events."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from steerable_agent.agent_core.hooks import (
    HookPhase,
    PostActingEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreReasoningEvent,
    hook_event_adapter,
)
from steerable_agent.agent_core.schemas import InterruptionReason


@pytest.mark.parametrize(
    "event_cls,phase",
    [
        (PreReasoningEvent, HookPhase.pre_reasoning),
        (PostReasoningEvent, HookPhase.post_reasoning),
        (PreActingEvent, HookPhase.pre_acting),
        (PostActingEvent, HookPhase.post_acting),
    ],
)
def test_event_carries_its_phase_tag(event_cls, phase) -> None:
    event = event_cls(agent_id="a1")
    assert event.phase is phase
    assert event.should_stop is False


def test_stop_sets_flag_and_optional_reason() -> None:
    event = PreReasoningEvent()
    event.stop()
    assert event.should_stop is True
    assert event.stop_reason is None

    other = PostActingEvent()
    other.stop(InterruptionReason.resource_limit)
    assert other.stop_reason is InterruptionReason.resource_limit


def test_adapter_discriminates_on_phase() -> None:
    event = hook_event_adapter.validate_python(
        {"phase": "pre_acting", "agent_id": "a1", "action": "search", "parameters": {"q": "x"}}
    )

    assert isinstance(event, PreActingEvent)
    assert event.action == "search"
    assert event.parameters == {"q": "x"}


def test_adapter_rejects_unknown_phase() -> None:
    with pytest.raises(ValidationError):
        hook_event_adapter.validate_python({"phase": "mid_reasoning"})


def test_events_reject_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        PostReasoningEvent(reasoning_result="r", unexpected=True)
