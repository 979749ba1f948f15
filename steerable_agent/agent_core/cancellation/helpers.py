from __future__ import annotations

"""Helpers for cooperative cancellation checks inside black-box work."""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

from ..errors import OperationCancelledError
from .token import CancellationSource, CancellationToken, link_tokens

T = TypeVar("T")


def check_cancellation(token: CancellationToken, operation_name: Optional[str] = None) -> None:
    """Raise ``OperationCancelledError`` if ``token`` has been cancelled."""
    token.raise_if_cancelled(operation_name)


def combine_tokens(*tokens: CancellationToken) -> CancellationToken:
    """
    Combine several tokens into one that trips when any of them does.

    A single token is returned unchanged and no tokens yields a token that is
    never cancelled.
    """
    if not tokens:
        return CancellationToken.none()
    if len(tokens) == 1:
        return tokens[0]
    return link_tokens(*tokens).token


def timeout_token(seconds: float) -> CancellationToken:
    """Return a token that is cancelled after ``seconds``."""
    source = CancellationSource()
    source.cancel_after(seconds)
    return source.token


async def with_periodic_check(
    factory: Callable[[], Awaitable[T]],
    token: CancellationToken,
    interval: float,
    *,
    operation_name: Optional[str] = None,
) -> T:
    """Await ``factory()`` while polling ``token`` every ``interval`` seconds.

    This is meant for black-box work that awaits something which does not
    know about tokens (an HTTP call, a subprocess). When the token trips, the
    inner task is cancelled and ``OperationCancelledError`` is raised.
    Exceptions raised by the awaited work propagate unchanged.
    """
    token.raise_if_cancelled(operation_name)
    task = asyncio.ensure_future(factory())
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=interval)
            if done:
                return task.result()
            if token.is_cancelled:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
                raise OperationCancelledError(operation_name)
    finally:
        if not task.done():
            task.cancel()
