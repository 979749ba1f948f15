"""Unit tests for cancellation helper functions."""

from __future__ import annotations

import asyncio

import pytest

from steerable_agent.agent_core.cancellation import (
    CancellationSource,
    CancellationToken,
    check_cancellation,
    combine_tokens,
    timeout_token,
    with_periodic_check,
)
from steerable_agent.agent_core.errors import OperationCancelledError


def test_check_cancellation_raises_once_cancelled() -> None:
    source = CancellationSource()
    check_cancellation(source.token, "step")

    source.cancel()

    with pytest.raises(OperationCancelledError):
        check_cancellation(source.token, "step")


def test_combine_tokens_without_tokens_is_never_cancelled() -> None:
    token = combine_tokens()
    assert token.can_be_cancelled is False


def test_combine_single_token_returns_it_unchanged() -> None:
    token = CancellationSource().token
    assert combine_tokens(token) is token


def test_combined_token_trips_with_any_input() -> None:
    a, b = CancellationSource(), CancellationSource()
    combined = combine_tokens(a.token, b.token)

    a.cancel()

    assert combined.is_cancelled


def test_timeout_token_trips_after_delay() -> None:
    token = timeout_token(0.01)
    assert token.wait(timeout=2.0) is True


class TestWithPeriodicCheck:
    @pytest.mark.asyncio
    async def test_returns_result_of_work(self) -> None:
        async def work() -> str:
            await asyncio.sleep(0.01)
            return "result"

        result = await with_periodic_check(work, CancellationToken.none(), 0.005)

        assert result == "result"

    @pytest.mark.asyncio
    async def test_raises_immediately_when_already_cancelled(self) -> None:
        source = CancellationSource()
        source.cancel()
        started = []

        async def work() -> None:
            started.append(True)

        with pytest.raises(OperationCancelledError):
            await with_periodic_check(work, source.token, 0.005, operation_name="work")

        assert started == []

    @pytest.mark.asyncio
    async def test_cancels_inner_work_when_token_trips(self) -> None:
        source = CancellationSource()
        inner_cancelled = asyncio.Event()

        async def work() -> None:
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                inner_cancelled.set()
                raise

        async def trip() -> None:
            await asyncio.sleep(0.02)
            source.cancel()

        trip_task = asyncio.ensure_future(trip())
        with pytest.raises(OperationCancelledError):
            await with_periodic_check(work, source.token, 0.005, operation_name="work")
        await trip_task

        assert inner_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_work_errors_propagate_unchanged(self) -> None:
        async def work() -> None:
            raise ValueError("bad input")

        with pytest.raises(ValueError, match="bad input"):
            await with_periodic_check(work, CancellationToken.none(), 0.005)
