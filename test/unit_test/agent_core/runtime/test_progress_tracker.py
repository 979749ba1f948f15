"""Unit tests for ProgressTracker."""

from __future__ import annotations

from typing import List

from steerable_agent.agent_core.runtime import ProgressTracker
from steerable_agent.agent_core.schemas import OperationProgress


def test_start_resets_progress() -> None:
    tracker = ProgressTracker()
    tracker.update(percentage=80.0)

    tracker.start(25.0, total_items=4, items_processed=1)

    progress = tracker.snapshot()
    assert progress.percentage == 25.0
    assert progress.total_items == 4
    assert progress.items_processed == 1


def test_percentage_never_decreases() -> None:
    tracker = ProgressTracker()
    tracker.update(percentage=60.0)

    tracker.update(percentage=30.0, current_step="later")

    assert tracker.percentage == 60.0
    assert tracker.snapshot().current_step == "later"


def test_percentage_is_clamped() -> None:
    tracker = ProgressTracker()

    tracker.update(percentage=250.0)

    assert tracker.percentage == 100.0


def test_estimate_requires_processed_items_and_total() -> None:
    tracker = ProgressTracker()
    tracker.start(total_items=None)
    assert tracker.update(items_processed=1).estimated_time_remaining is None

    tracker.start(total_items=4)
    progress = tracker.update(items_processed=2)
    assert progress.estimated_time_remaining is not None
    assert progress.estimated_time_remaining.total_seconds() >= 0


def test_sink_receives_every_update_and_its_errors_are_contained() -> None:
    received: List[OperationProgress] = []

    def sink(progress: OperationProgress) -> None:
        received.append(progress)
        if len(received) == 1:
            raise RuntimeError("display offline")

    tracker = ProgressTracker(sink)
    tracker.update(percentage=10.0)
    tracker.update(percentage=20.0)

    assert [p.percentage for p in received] == [10.0, 20.0]
    assert tracker.percentage == 20.0
