from __future__ import annotations

"""Interruptible execution controller.

``ExecutionController`` drives a run of the agent loop and owns its
interrupt/snapshot/resume life cycle.

Execution model
---------------

- The phase sequence is a LangGraph state machine:
  ``pre_reasoning -> reasoning -> post_reasoning -> [pre_acting -> acting -> post_acting]``
  repeated until the reasoning step finishes the run or ``max_iterations``
  iterations have completed.
- A ``HookPipeline`` dispatch happens at every phase boundary. The
  cancellation token is checked right before and right after each dispatch
  and around each black-box call.
- A hook that sets ``should_stop`` is handled exactly like an external
  cancellation request for the rest of the run.

State machine
-------------

``idle -> running -> (completed | interrupted | failed) -> idle``

- ``completed``: the loop ended normally; ``execute`` returns a result.
- ``interrupted``: cancellation was observed. When the triggering
  ``InterruptionContext`` asks to preserve state, a snapshot is captured before
  the transition. ``execute`` returns an interrupted result.
- ``failed``: an observer or black-box step raised; the error is re-raised to
  the caller.

The running flag is always reset on the way out, whatever the exit route.

Interrupt/resume
----------------

``interrupt`` trips the coordinator and waits, for a bounded grace period,
for the run to settle. Cancellation is cooperative: a run that never checks
its token keeps running and ``interrupt`` reports ``stalled``. ``resume``
consumes the current snapshot, restores custom state and continues from the
captured iteration and progress.
"""

import asyncio
import logging
import threading
import time
from typing import Any, Callable, Optional, Tuple
from uuid import uuid4

from langgraph.graph import END, StateGraph

from ...core import monitoring
from ...core.config import ExecutionSettings
from ...core.config import settings as default_settings
from ..cancellation import CancellationCoordinator, CancellationScope, CancellationToken
from ..errors import (
    BusyError,
    InvalidStateError,
    ObserverFailureError,
    OperationCancelledError,
    WorkFailureError,
)
from ..hooks import (
    HookEventBase,
    HookPhase,
    HookPipeline,
    PostActingEvent,
    PostReasoningEvent,
    PreActingEvent,
    PreReasoningEvent,
)
from ..schemas.domain import (
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
from ..snapshot import SnapshotStore
from .models import ControllerDeps, ReasoningContext, _GraphState, _RunRecord
from .notifications import NotificationChannel
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

CONTROLLER_STATE_KEY = "__controller__"
MAX_ITERATIONS_MESSAGE = "Reached maximum iterations without conclusion."


class ExecutionController:
    """Drive an agent loop with cooperative interruption and snapshot/resume.

    The controller is deliberately orchestration-only: reasoning and acting are
    delegated to the black boxes in ``ControllerDeps`` and observers plug in
    through the ``HookPipeline``.

    Only one run is in flight per instance. The running flag and the current
    snapshot slot share one lock; public methods can be called from other
    tasks or threads.
    """

    def __init__(
        self,
        deps: ControllerDeps,
        *,
        settings: Optional[ExecutionSettings] = None,
        agent_id: str = "agent",
        operation_type: Optional[str] = None,
    ) -> None:
        """
        Initialize the ExecutionController.

        Args:
            deps: The black boxes and optional collaborators of the controller.
            settings: Execution settings; defaults to the environment driven settings.
            agent_id: Identifier stamped on hook events and logs.
            operation_type: Type identifier stamped on snapshots; defaults to the class path.
        """
        self._deps = deps
        self._settings = settings or default_settings.execution
        self.agent_id = agent_id
        self.operation_type = operation_type or f"{type(self).__module__}.{type(self).__qualname__}"

        self._hooks = deps.hooks if deps.hooks is not None else HookPipeline()
        self._lock = threading.RLock()
        self._state = ControllerState.idle
        self._run_id: Optional[str] = None
        self._record: Optional[_RunRecord] = None
        self._scope: Optional[CancellationScope] = None
        self._pending: Optional[InterruptionContext] = None
        self._last_error: Optional[BaseException] = None
        self._last_interruption: Optional[InterruptionContext] = None

        self._cancellation = CancellationCoordinator()
        self._snapshots = SnapshotStore(version=self._settings.snapshot_version, lock=self._lock)
        self._progress = ProgressTracker(deps.progress_sink)

        self.interruption_requested: NotificationChannel[InterruptionContext] = NotificationChannel(
            "interruption_requested"
        )
        self.interrupted: NotificationChannel[InterruptionContext] = NotificationChannel("interrupted")
        self.state_changed: NotificationChannel[StateTransition] = NotificationChannel("state_changed")

        self._graph = self._build_graph()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def hooks(self) -> HookPipeline:
        return self._hooks

    @property
    def settings(self) -> ExecutionSettings:
        return self._settings

    @property
    def state(self) -> ControllerState:
        with self._lock:
            return self._state

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._state is not ControllerState.idle

    @property
    def can_resume(self) -> bool:
        return self._snapshots.can_resume()

    @property
    def current_snapshot(self) -> Optional[InterruptionState]:
        return self._snapshots.current

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancellation.is_cancellation_requested

    @property
    def cancellation_token(self) -> CancellationToken:
        return self._cancellation.token()

    @property
    def progress(self) -> OperationProgress:
        if self._deps.progress_source is not None:
            return self._deps.progress_source()
        return self._progress.snapshot()

    @property
    def last_error(self) -> Optional[BaseException]:
        return self._last_error

    @property
    def last_interruption(self) -> Optional[InterruptionContext]:
        return self._last_interruption

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def execute(
        self,
        message: Any = None,
        cancellation_token: Optional[CancellationToken] = None,
        *,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Run the agent loop for ``message``.

        Raises
        ------
        BusyError
            If a run is already in flight on this controller.
        ObserverFailureError, WorkFailureError
            If a hook or a black-box step failed; the controller is idle again.
        """
        run_id, _ = self._begin_run()

        def prepare() -> _RunRecord:
            self._progress.start(0.0, total_items=self._settings.max_iterations)
            return _RunRecord(run_id=run_id, message=message)

        return await self._run(run_id, "execute", prepare, cancellation_token, timeout)

    async def resume(
        self,
        state: Optional[InterruptionState] = None,
        cancellation_token: Optional[CancellationToken] = None,
        *,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Continue the run captured in the current snapshot.

        ``state`` is optional; when given it must be the current snapshot.
        The snapshot is consumed once custom state has been restored.

        Raises
        ------
        InvalidStateError
            If there is nothing to resume or ``state`` is not the current snapshot.
        BusyError
            If a run is already in flight on this controller.
        """
        run_id, claimed = self._begin_run(resuming=True, expected=state)

        def prepare() -> _RunRecord:
            controller_data: dict = {}

            def restore(data: dict) -> None:
                controller_data.update(data.pop(CONTROLLER_STATE_KEY, None) or {})
                if self._deps.state_restorer is not None:
                    self._deps.state_restorer(data)

            snapshot = self._snapshots.restore(restore, claimed)
            record = _RunRecord.from_snapshot_data(run_id, controller_data)
            self._progress.start(
                snapshot.progress,
                total_items=self._settings.max_iterations,
                items_processed=record.completed_iterations,
            )
            logger.info(
                f"Resuming '{self.agent_id}' from snapshot {snapshot.id}: "
                f"iteration={record.current_iteration}, progress={snapshot.progress:.1f}"
            )
            return record

        return await self._run(run_id, "resume", prepare, cancellation_token, timeout)

    async def interrupt(self, context: Optional[InterruptionContext] = None) -> InterruptOutcome:
        """Request a cooperative interruption of the in-flight run.

        Returns immediately with ``not_running`` when the controller is idle.
        Otherwise publishes ``interruption_requested``, trips the cancellation
        coordinator and polls until the run settles or the grace period
        elapses. The first context recorded for a run is the one the run
        reports.
        """
        context = context or InterruptionContext(reason=InterruptionReason.user_cancelled)
        with self._lock:
            if self._state is not ControllerState.running:
                return InterruptOutcome.not_running
            run_id = self._run_id
            if self._pending is None:
                self._pending = context

        logger.info(f"Interruption requested for '{self.agent_id}' run {run_id}: reason={context.reason.value}")
        self.interruption_requested.publish(context)
        self._cancellation.request_cancel()

        grace = self._settings.interrupt_grace_period
        poll = self._settings.interrupt_poll_interval
        started = time.monotonic()
        while self._is_active_run(run_id) and time.monotonic() - started < grace:
            await asyncio.sleep(poll)

        if self._is_active_run(run_id):
            waited = time.monotonic() - started
            logger.warning(
                f"Run {run_id} of '{self.agent_id}' did not settle within {grace}s after an interrupt request; "
                f"it keeps running until it checks its cancellation token"
            )
            monitoring.log_interrupt_stalled(self.agent_id, run_id, context.reason.value, waited)
            with self._lock:
                accepted = self._pending or context
            # Settling later captures again and replaces this snapshot.
            if accepted.preserve_state:
                self.capture_state()
            return InterruptOutcome.stalled
        return InterruptOutcome.settled

    def capture_state(self) -> InterruptionState:
        """Capture a snapshot of the current (or last) run and make it current."""
        with self._lock:
            record = self._record
        controller_data = (record or _RunRecord(run_id="")).to_snapshot_data()

        def collect(data: dict) -> None:
            if self._deps.state_collector is not None:
                self._deps.state_collector(data)
            data[CONTROLLER_STATE_KEY] = controller_data

        return self._snapshots.capture(self.operation_type, lambda: self.progress, collect)

    def discard_snapshot(self) -> Optional[InterruptionState]:
        return self._snapshots.discard()

    # ------------------------------------------------------------------
    # Run life cycle
    # ------------------------------------------------------------------

    def _begin_run(
        self, *, resuming: bool = False, expected: Optional[InterruptionState] = None
    ) -> Tuple[str, Optional[InterruptionState]]:
        with self._lock:
            if self._state is not ControllerState.idle:
                raise BusyError(self.agent_id, self._run_id)
            # The snapshot leaves the store under the same lock hold as the busy check.
            claimed = self._snapshots.claim(expected) if resuming else None
            # Idle implies no active scope and no accepted interrupt for this run.
            self._cancellation.reset()
            run_id = str(uuid4())
            self._run_id = run_id
            self._pending = None
            self._last_error = None
            self._last_interruption = None
            previous, self._state = self._state, ControllerState.running
        self._publish_transition(previous, ControllerState.running, run_id)
        return run_id, claimed

    async def _run(
        self,
        run_id: str,
        mode: str,
        prepare: Callable[[], _RunRecord],
        cancellation_token: Optional[CancellationToken],
        timeout: Optional[float],
    ) -> ExecutionResult:
        started = time.monotonic()
        scope: Optional[CancellationScope] = None
        deadline: Optional[asyncio.Future] = None
        monitoring.log_run_started(self.agent_id, run_id, mode)
        try:
            with monitoring.run_span("agent run {mode}", agent_id=self.agent_id, run_id=run_id, mode=mode):
                record = prepare()
                scope = self._cancellation.begin_scope(cancellation_token)
                with self._lock:
                    self._record = record
                    self._scope = scope
                if timeout is not None:
                    deadline = asyncio.ensure_future(self._interrupt_after(timeout, run_id))

                try:
                    await self._graph.ainvoke({"run_id": run_id}, config={"recursion_limit": self._recursion_limit()})
                except OperationCancelledError as e:
                    return self._settle_interrupted(record, scope, e)

                self._transition(ControllerState.completed, run_id)
                logger.info(f"Run {run_id} of '{self.agent_id}' completed after {record.completed_iterations} iteration(s)")
                return ExecutionResult(
                    run_id=run_id,
                    status=RunOutcome.completed,
                    output=record.output,
                    iterations=record.completed_iterations,
                    progress=self.progress.percentage,
                    reached_max_iterations=record.reached_max_iterations,
                    history=list(record.history),
                )
        except (ObserverFailureError, WorkFailureError) as e:
            self._fail(run_id, e)
            raise
        except Exception as e:
            logger.exception(f"Run {run_id} of '{self.agent_id}' failed with an internal error")
            self._fail(run_id, e)
            raise
        finally:
            if deadline is not None:
                deadline.cancel()
            if scope is not None:
                scope.release()
            self._end_run(run_id, started)

    def _settle_interrupted(
        self, record: _RunRecord, scope: CancellationScope, error: OperationCancelledError
    ) -> ExecutionResult:
        context = self._resolve_interruption(scope, error)
        snapshot = self.capture_state() if context.preserve_state else None
        with self._lock:
            self._last_interruption = context
        self._transition(ControllerState.interrupted, record.run_id)
        logger.info(
            f"Run {record.run_id} of '{self.agent_id}' interrupted: reason={context.reason.value}, "
            f"snapshot={snapshot.id if snapshot else None}"
        )
        self.interrupted.publish(context)
        return ExecutionResult(
            run_id=record.run_id,
            status=RunOutcome.interrupted,
            iterations=record.completed_iterations,
            progress=self.progress.percentage,
            interruption=context,
            snapshot_id=snapshot.id if snapshot else None,
            history=list(record.history),
        )

    def _resolve_interruption(self, scope: CancellationScope, error: OperationCancelledError) -> InterruptionContext:
        with self._lock:
            context = self._pending
        if context is not None:
            return context
        if scope.external_requested:
            return InterruptionContext(
                reason=InterruptionReason.external_signal,
                source="cancellation_token",
                message="Caller supplied cancellation token was cancelled",
                preserve_state=self._settings.auto_save_state,
            )
        return InterruptionContext(
            reason=InterruptionReason.external_signal,
            source="work",
            message=str(error),
            preserve_state=self._settings.auto_save_state,
        )

    def _fail(self, run_id: str, error: Exception) -> None:
        source = "hook" if isinstance(error, ObserverFailureError) else "work"
        with self._lock:
            self._last_error = error
            self._last_interruption = InterruptionContext(
                reason=InterruptionReason.error,
                error=f"{type(error).__name__}: {error}",
                source=source,
                preserve_state=False,
            )
        self._transition(ControllerState.failed, run_id)
        logger.error(f"Run {run_id} of '{self.agent_id}' failed: {error}")

    def _end_run(self, run_id: str, started: float) -> None:
        with self._lock:
            terminal = self._state
        if terminal is ControllerState.running:
            # Left without settling, e.g. the awaiting task was cancelled.
            self._transition(ControllerState.failed, run_id)
            terminal = ControllerState.failed
        with self._lock:
            self._scope = None
            self._pending = None
            self._run_id = None
        self._transition(ControllerState.idle, run_id)
        monitoring.log_run_finished(self.agent_id, run_id, terminal.value, (time.monotonic() - started) * 1000)

    def _transition(self, new_state: ControllerState, run_id: Optional[str]) -> None:
        with self._lock:
            previous, self._state = self._state, new_state
        self._publish_transition(previous, new_state, run_id)

    def _publish_transition(
        self, previous: ControllerState, new_state: ControllerState, run_id: Optional[str]
    ) -> None:
        logger.debug(f"'{self.agent_id}' state: {previous.value} -> {new_state.value} (run {run_id})")
        self.state_changed.publish(StateTransition(previous=previous, current=new_state, run_id=run_id))

    def _is_active_run(self, run_id: Optional[str]) -> bool:
        with self._lock:
            return self._run_id is not None and self._run_id == run_id

    async def _interrupt_after(self, seconds: float, run_id: str) -> None:
        await asyncio.sleep(seconds)
        if not self._is_active_run(run_id):
            return
        await self.interrupt(
            InterruptionContext(
                reason=InterruptionReason.timeout,
                source="deadline",
                message=f"Run exceeded its {seconds}s deadline",
            )
        )

    def _recursion_limit(self) -> int:
        return self._settings.max_iterations * 6 + 10

    # ------------------------------------------------------------------
    # Graph
    # ------------------------------------------------------------------

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("pre_reasoning", self._node_pre_reasoning)
        g.add_node("reasoning", self._node_reasoning)
        g.add_node("post_reasoning", self._node_post_reasoning)
        g.add_node("pre_acting", self._node_pre_acting)
        g.add_node("acting", self._node_acting)
        g.add_node("post_acting", self._node_post_acting)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_conditional_edges("start", self._route, {"continue": "pre_reasoning", "finish": "finish"})
        g.add_edge("pre_reasoning", "reasoning")
        g.add_edge("reasoning", "post_reasoning")
        g.add_conditional_edges(
            "post_reasoning",
            self._route,
            {
                "act": "pre_acting",
                "continue": "pre_reasoning",
                "finish": "finish",
            },
        )
        g.add_edge("pre_acting", "acting")
        g.add_edge("acting", "post_acting")
        g.add_conditional_edges("post_acting", self._route, {"continue": "pre_reasoning", "finish": "finish"})
        g.add_edge("finish", END)
        return g.compile()

    def _route(self, state: _GraphState) -> str:
        return str(state.get("_route") or "continue")

    def _active_record(self) -> _RunRecord:
        with self._lock:
            record = self._record
        if record is None:
            raise InvalidStateError("no run in flight")
        return record

    def _token(self) -> CancellationToken:
        with self._lock:
            scope = self._scope
        if scope is None:
            raise InvalidStateError("no cancellation scope is active")
        return scope.token

    async def _dispatch(self, phase: HookPhase, event: HookEventBase) -> None:
        """Dispatch ``event`` with cancellation checks on both sides."""
        token = self._token()
        token.raise_if_cancelled(phase.value)
        await self._hooks.dispatch(phase, event)
        if event.should_stop:
            self._stop_from_hook(phase, event)
        token.raise_if_cancelled(phase.value)

    def _stop_from_hook(self, phase: HookPhase, event: HookEventBase) -> None:
        context = InterruptionContext(
            reason=event.stop_reason or InterruptionReason.external_signal,
            source=f"hook:{phase.value}",
            message=f"Run stopped by an observer during {phase.value}",
            preserve_state=self._settings.auto_save_state,
        )
        with self._lock:
            if self._pending is None:
                self._pending = context
        logger.info(f"Observer stopped '{self.agent_id}' during {phase.value}")
        self._cancellation.request_cancel()

    def _end_iteration(self, record: _RunRecord) -> str:
        record.history.extend(record.pending_history)
        record.pending_history = []
        record.completed_iterations += 1

        reported = record.reasoning.progress if record.reasoning is not None else None
        if reported is None:
            reported = record.completed_iterations * 100.0 / self._settings.max_iterations
        self._progress.update(
            percentage=reported,
            current_step=f"iteration {record.completed_iterations} done",
            items_processed=record.completed_iterations,
        )

        if record.finished:
            return "finish"
        if record.completed_iterations >= self._settings.max_iterations:
            record.reached_max_iterations = True
            return "finish"
        return "continue"

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Graph entry node; routes a resumed run that already used all iterations to finish."""
        record = self._active_record()
        if record.completed_iterations >= self._settings.max_iterations:
            record.reached_max_iterations = True
            state["_route"] = "finish"
        else:
            state["_route"] = "continue"
        return state

    async def _node_pre_reasoning(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        record.reasoning = None
        record.action_outcome = None
        record.pending_history = []
        event = PreReasoningEvent(agent_id=self.agent_id, message=record.message, context="\n".join(record.history))
        await self._dispatch(HookPhase.pre_reasoning, event)
        return state

    async def _node_reasoning(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        token = self._token()
        token.raise_if_cancelled("reasoning")
        context = ReasoningContext(
            agent_id=self.agent_id,
            message=record.message,
            iteration=record.current_iteration,
            history=tuple(record.history),
            progress=self._progress.percentage,
        )
        try:
            output = await self._deps.reasoner.reason(context, token)
        except OperationCancelledError:
            raise
        except Exception as e:
            raise WorkFailureError("reasoning", str(e)) from e
        token.raise_if_cancelled("reasoning")

        record.reasoning = output
        if output.progress is not None:
            self._progress.update(percentage=output.progress, current_step=f"iteration {record.current_iteration}: reasoned")
        return state

    async def _node_post_reasoning(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        output = record.reasoning
        if output is None:
            raise InvalidStateError("post-reasoning reached without a reasoning result")
        event = PostReasoningEvent(agent_id=self.agent_id, message=record.message, reasoning_result=output.result)
        await self._dispatch(HookPhase.post_reasoning, event)

        record.pending_history.append(f"Thought {record.current_iteration}: {output.result}")
        state["pending_action"] = None
        if output.finished:
            record.finished = True
            record.output = output.output if output.output is not None else output.result
            state["_route"] = self._end_iteration(record)
        elif output.next_action is not None:
            state["pending_action"] = output.next_action
            state["_route"] = "act"
        else:
            state["_route"] = self._end_iteration(record)
        return state

    async def _node_pre_acting(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        action = state.get("pending_action")
        if action is None:
            raise InvalidStateError("pre-acting reached without a pending action")
        event = PreActingEvent(
            agent_id=self.agent_id,
            message=record.message,
            action=action.name,
            parameters=action.parameters,
        )
        await self._dispatch(HookPhase.pre_acting, event)
        return state

    async def _node_acting(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        action = state.get("pending_action")
        if action is None:
            raise InvalidStateError("acting reached without a pending action")
        token = self._token()
        token.raise_if_cancelled("acting")
        try:
            outcome = await self._deps.actor.act(action, token)
        except OperationCancelledError:
            raise
        except Exception as e:
            raise WorkFailureError("acting", str(e)) from e
        token.raise_if_cancelled("acting")
        record.action_outcome = outcome
        return state

    async def _node_post_acting(self, state: _GraphState) -> _GraphState:
        record = self._active_record()
        action = state.get("pending_action")
        outcome = record.action_outcome
        if action is None or outcome is None:
            raise InvalidStateError("post-acting reached without an action outcome")
        event = PostActingEvent(
            agent_id=self.agent_id,
            message=record.message,
            action=action.name,
            result=outcome.result,
            success=outcome.success,
        )
        await self._dispatch(HookPhase.post_acting, event)

        verdict = "succeeded" if outcome.success else "failed"
        record.pending_history.append(
            f"Observation {record.current_iteration}: action '{action.name}' {verdict}: {outcome.result}"
        )
        state["pending_action"] = None
        state["_route"] = self._end_iteration(record)
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Finish node.

        Sets the fallback output when the iteration bound was hit and pushes
        progress to 100%.
        """
        record = self._active_record()
        if not record.finished:
            record.output = MAX_ITERATIONS_MESSAGE
        self._progress.update(percentage=100.0, current_step="completed")
        return state
