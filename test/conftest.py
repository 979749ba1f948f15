from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

# Load dotenv files early so settings picked up by the package see test values
try:  # pragma: no cover
    from dotenv import load_dotenv

    TEST_ROOT = Path(__file__).resolve().parent
    # Load test/.env first, then fallback to test/.env.example for defaults
    load_dotenv(TEST_ROOT / ".env", override=False)
    load_dotenv(TEST_ROOT / ".env.example", override=False)
except Exception:
    pass

from steerable_agent.agent_core.cancellation import CancellationToken
from steerable_agent.agent_core.runtime import (
    ActionOutcome,
    ActionRequest,
    ControllerDeps,
    ExecutionController,
    ReasoningContext,
    ReasoningOutput,
)
from steerable_agent.core.config import ExecutionSettings


class ScriptedReasoner:
    """Reasoner returning a scripted output per iteration.

    The output for iteration ``n`` is ``script[n - 1]``; iterations past the end
    of the script reuse the last entry. Entries may be callables taking the
    reasoning context.
    """

    def __init__(self, script: Sequence[object]) -> None:
        self.script = list(script)
        self.contexts: List[ReasoningContext] = []

    async def reason(self, context: ReasoningContext, token: CancellationToken) -> ReasoningOutput:
        self.contexts.append(context)
        entry = self.script[min(context.iteration, len(self.script)) - 1]
        if callable(entry):
            entry = entry(context)
        return entry


class GatedReasoner(ScriptedReasoner):
    """Scripted reasoner that blocks on chosen iterations until the gate opens.

    While blocked it checks its token every few milliseconds, unless
    ``cooperative`` is false, in which case it ignores cancellation.
    """

    def __init__(self, script: Sequence[object], block_on: Sequence[int], *, cooperative: bool = True) -> None:
        super().__init__(script)
        self.block_on = set(block_on)
        self.cooperative = cooperative
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    async def reason(self, context: ReasoningContext, token: CancellationToken) -> ReasoningOutput:
        if context.iteration in self.block_on and not self.gate.is_set():
            self.entered.set()
            while not self.gate.is_set():
                if self.cooperative:
                    token.raise_if_cancelled("reasoning")
                await asyncio.sleep(0.005)
        return await super().reason(context, token)


class EchoActor:
    def __init__(self) -> None:
        self.actions: List[ActionRequest] = []

    async def act(self, action: ActionRequest, token: CancellationToken) -> ActionOutcome:
        self.actions.append(action)
        return ActionOutcome(result=f"{action.name} done")


def think(result: str = "thinking", action: Optional[str] = None, **kwargs) -> ReasoningOutput:
    next_action = ActionRequest(name=action) if action else None
    return ReasoningOutput(result=result, next_action=next_action, **kwargs)


def answer(output: str = "final answer") -> ReasoningOutput:
    return ReasoningOutput(result="done", finished=True, output=output)


@pytest.fixture
def execution_settings() -> ExecutionSettings:
    return ExecutionSettings(
        max_iterations=5,
        interrupt_grace_period=1.0,
        interrupt_poll_interval=0.01,
        auto_save_state=True,
    )


@pytest.fixture
def scripted_reasoner() -> Callable[..., ScriptedReasoner]:
    return ScriptedReasoner


@pytest.fixture
def gated_reasoner() -> Callable[..., GatedReasoner]:
    return GatedReasoner


@pytest.fixture
def reasoning_outputs():
    """Builders for reasoning outputs: ``think`` and ``answer``."""
    return think, answer


@pytest.fixture
def echo_actor() -> EchoActor:
    return EchoActor()


@pytest.fixture
def make_controller(execution_settings: ExecutionSettings, echo_actor: EchoActor):
    """Build an ``ExecutionController`` around the given reasoner."""

    def _make(reasoner, *, settings: Optional[ExecutionSettings] = None, **deps_kwargs) -> ExecutionController:
        deps_kwargs.setdefault("actor", echo_actor)
        deps = ControllerDeps(reasoner=reasoner, **deps_kwargs)
        return ExecutionController(deps, settings=settings or execution_settings, agent_id="test-agent")

    return _make


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it holds or ``timeout`` elapses."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_for():
    return wait_until
