from __future__ import annotations

"""Hook protocol and a convenience base class.

A hook observes the agent loop at its four phase boundaries. Handlers receive
the phase event and may inspect it or call ``event.stop()`` to short-circuit
the run. Handlers can be coroutine functions or plain functions; the pipeline
awaits whatever they return when it is awaitable.
"""

from typing import Awaitable, Optional, Protocol, Union, runtime_checkable

from .events import PostActingEvent, PostReasoningEvent, PreActingEvent, PreReasoningEvent

HandlerResult = Union[None, Awaitable[None]]


@runtime_checkable
class Hook(Protocol):
    """Protocol for phase observers."""

    name: str

    def on_pre_reasoning(self, event: PreReasoningEvent) -> HandlerResult: ...

    def on_post_reasoning(self, event: PostReasoningEvent) -> HandlerResult: ...

    def on_pre_acting(self, event: PreActingEvent) -> HandlerResult: ...

    def on_post_acting(self, event: PostActingEvent) -> HandlerResult: ...


class HookBase:
    """Hook with no-op handlers; subclasses override the phases they care about."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name or type(self).__name__

    async def on_pre_reasoning(self, event: PreReasoningEvent) -> None:
        return None

    async def on_post_reasoning(self, event: PostReasoningEvent) -> None:
        return None

    async def on_pre_acting(self, event: PreActingEvent) -> None:
        return None

    async def on_post_acting(self, event: PostActingEvent) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
