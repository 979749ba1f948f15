"""Phase hooks for the agent loop.

Hooks observe the four phase boundaries of each iteration (pre/post reasoning,
pre/post acting) and may stop the run by setting ``should_stop`` on the event.
The ``HookPipeline`` owns the registry and the dispatch semantics.
"""

from .base import Hook, HookBase
from .events import (
    HookEvent,
    HookEventBase,
    HookPhase,
    PostActingEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreReasoningEvent,
    hook_event_adapter,
)
from .pipeline import HookPipeline

__all__ = [
    "Hook",
    "HookBase",
    "HookEvent",
    "HookEventBase",
    "HookPhase",
    "HookPipeline",
    "PostActingEvent",
    "PostReasoningEvent",
    "PreActingEvent",
    "PreReasoningEvent",
    "hook_event_adapter",
]
