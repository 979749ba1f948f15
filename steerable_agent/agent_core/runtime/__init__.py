"""Interruptible execution runtime for agent runs.

The runtime drives the reasoning/acting loop of a single agent and owns its
interrupt, snapshot and resume life cycle:

- ``pre_reasoning -> reasoning -> post_reasoning -> [pre_acting -> acting -> post_acting]``
  is repeated until the reasoner finishes the run or the iteration bound is
  reached.
- Every phase boundary dispatches a hook event and checks the run's
  cancellation token.
- An interrupted run can capture a snapshot that ``resume`` continues from.

The main entry point is ``ExecutionController``. Reasoning and acting are
black boxes supplied through ``ControllerDeps``.
"""

from .controller import CONTROLLER_STATE_KEY, MAX_ITERATIONS_MESSAGE, ExecutionController
from .models import (
    ActionOutcome,
    ActionRequest,
    Actor,
    ControllerDeps,
    ProgressSink,
    Reasoner,
    ReasoningContext,
    ReasoningOutput,
)
from .notifications import NotificationChannel
from .progress import ProgressTracker

__all__ = [
    "CONTROLLER_STATE_KEY",
    "MAX_ITERATIONS_MESSAGE",
    "ActionOutcome",
    "ActionRequest",
    "Actor",
    "ControllerDeps",
    "ExecutionController",
    "NotificationChannel",
    "ProgressSink",
    "ProgressTracker",
    "Reasoner",
    "ReasoningContext",
    "ReasoningOutput",
]
