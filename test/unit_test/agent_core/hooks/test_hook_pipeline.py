"""Unit tests for HookPipeline registration and dispatch semantics."""

from __future__ import annotations

import asyncio
import threading
from typing import List

import pytest

from steerable_agent.agent_core.errors import ObserverFailureError
from steerable_agent.agent_core.hooks import (
    HookBase,
    HookPhase,
    HookPipeline,
    PostReasoningEvent,
    PreActingEvent,
    PreReasoningEvent,
)


class RecordingHook(HookBase):
    def __init__(self, name: str, calls: List[str], *, stop: bool = False, fail: bool = False) -> None:
        super().__init__(name)
        self.calls = calls
        self.stops = stop
        self.fail = fail

    async def on_pre_reasoning(self, event: PreReasoningEvent) -> None:
        self.calls.append(self.name)
        if self.fail:
            raise RuntimeError("observer broke")
        if self.stops:
            event.stop()


class SyncHook:
    """Hook with a plain (non-async) handler and only one phase."""

    name = "sync"

    def __init__(self, calls: List[str]) -> None:
        self.calls = calls

    def on_post_reasoning(self, event: PostReasoningEvent) -> None:
        self.calls.append(f"{self.name}:{event.reasoning_result}")


class TestHookPipelineRegistry:
    def test_register_keeps_order_and_allows_duplicates(self) -> None:
        pipeline = HookPipeline()
        a, b = RecordingHook("a", []), RecordingHook("b", [])

        pipeline.register(a)
        pipeline.register(b)
        pipeline.register(a)

        assert pipeline.hooks == (a, b, a)
        assert len(pipeline) == 3

    def test_unregister_removes_first_occurrence_only(self) -> None:
        pipeline = HookPipeline()
        a, b = RecordingHook("a", []), RecordingHook("b", [])
        for hook in (a, b, a):
            pipeline.register(hook)

        assert pipeline.unregister(a) is True

        assert pipeline.hooks == (b, a)

    def test_unregister_unknown_hook(self) -> None:
        assert HookPipeline().unregister(RecordingHook("x", [])) is False

    def test_clear(self) -> None:
        pipeline = HookPipeline()
        pipeline.register(RecordingHook("a", []))

        pipeline.clear()

        assert len(pipeline) == 0


class TestHookPipelineDispatch:
    @pytest.mark.asyncio
    async def test_hooks_run_in_registration_order(self) -> None:
        calls: List[str] = []
        pipeline = HookPipeline()
        for name in ("first", "second", "third"):
            pipeline.register(RecordingHook(name, calls))

        event = await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())

        assert calls == ["first", "second", "third"]
        assert event.should_stop is False

    @pytest.mark.asyncio
    async def test_should_stop_short_circuits_remaining_hooks(self) -> None:
        calls: List[str] = []
        pipeline = HookPipeline()
        pipeline.register(RecordingHook("first", calls))
        pipeline.register(RecordingHook("stopper", calls, stop=True))
        pipeline.register(RecordingHook("never", calls))

        event = await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())

        assert calls == ["first", "stopper"]
        assert event.should_stop is True

    @pytest.mark.asyncio
    async def test_failing_hook_raises_observer_failure(self) -> None:
        calls: List[str] = []
        pipeline = HookPipeline()
        pipeline.register(RecordingHook("broken", calls, fail=True))
        pipeline.register(RecordingHook("never", calls))

        with pytest.raises(ObserverFailureError) as exc_info:
            await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())

        assert exc_info.value.hook_name == "broken"
        assert exc_info.value.phase == "pre_reasoning"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert calls == ["broken"]

    @pytest.mark.asyncio
    async def test_sync_handlers_and_missing_handlers(self) -> None:
        calls: List[str] = []
        pipeline = HookPipeline()
        pipeline.register(SyncHook(calls))

        await pipeline.dispatch(HookPhase.post_reasoning, PostReasoningEvent(reasoning_result="r1"))
        await pipeline.dispatch(HookPhase.pre_acting, PreActingEvent(action="search"))

        assert calls == ["sync:r1"]

    @pytest.mark.asyncio
    async def test_phase_mismatch_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            await HookPipeline().dispatch(HookPhase.post_reasoning, PreReasoningEvent())

    @pytest.mark.asyncio
    async def test_registration_during_dispatch_affects_only_later_dispatches(self) -> None:
        calls: List[str] = []
        pipeline = HookPipeline()
        late = RecordingHook("late", calls)

        class Registering(HookBase):
            async def on_pre_reasoning(self, event: PreReasoningEvent) -> None:
                calls.append("registering")
                pipeline.register(late)
                pipeline.unregister(self)

        pipeline.register(Registering())

        await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())
        assert calls == ["registering"]

        await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())
        assert calls == ["registering", "late"]

    @pytest.mark.asyncio
    async def test_concurrent_dispatches_see_their_own_events(self) -> None:
        pipeline = HookPipeline()
        seen: List[str] = []

        class Slow(HookBase):
            async def on_pre_reasoning(self, event: PreReasoningEvent) -> None:
                await asyncio.sleep(0.01)
                seen.append(event.agent_id)
                if event.agent_id == "stop-me":
                    event.stop()

        pipeline.register(Slow())

        stopped, running = await asyncio.gather(
            pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent(agent_id="stop-me")),
            pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent(agent_id="keep-going")),
        )

        assert sorted(seen) == ["keep-going", "stop-me"]
        assert stopped.should_stop is True
        assert running.should_stop is False

    @pytest.mark.asyncio
    async def test_dispatch_sees_consistent_registry_under_threaded_mutation(self) -> None:
        pipeline = HookPipeline()
        stable = [RecordingHook(f"stable-{i}", []) for i in range(5)]
        for hook in stable:
            pipeline.register(hook)
        churn = RecordingHook("churn", [])
        stop = threading.Event()

        def mutate() -> None:
            while not stop.is_set():
                pipeline.register(churn)
                pipeline.unregister(churn)

        worker = threading.Thread(target=mutate)
        worker.start()
        try:
            for _ in range(200):
                await pipeline.dispatch(HookPhase.pre_reasoning, PreReasoningEvent())
                snapshot = pipeline.hooks
                assert snapshot[:5] == tuple(stable)
                assert len(snapshot) in (5, 6)
        finally:
            stop.set()
            worker.join()

        assert all(len(hook.calls) == 200 for hook in stable)
