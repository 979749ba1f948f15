"""Unit tests for NotificationChannel."""

from __future__ import annotations

from typing import List

from steerable_agent.agent_core.runtime import NotificationChannel


def test_publish_fans_out_in_subscription_order() -> None:
    channel: NotificationChannel[int] = NotificationChannel("numbers")
    received: List[str] = []
    channel.subscribe(lambda n: received.append(f"a{n}"))
    channel.subscribe(lambda n: received.append(f"b{n}"))

    channel.publish(1)

    assert received == ["a1", "b1"]
    assert channel.subscriber_count == 2


def test_unsubscribe_handle_removes_subscription() -> None:
    channel: NotificationChannel[int] = NotificationChannel("numbers")
    received: List[int] = []
    unsubscribe = channel.subscribe(received.append)

    unsubscribe()
    channel.publish(1)

    assert received == []
    assert channel.unsubscribe(received.append) is False


def test_failing_subscriber_is_skipped(caplog) -> None:
    channel: NotificationChannel[str] = NotificationChannel("events")
    received: List[str] = []

    def broken(payload: str) -> None:
        raise RuntimeError("subscriber broke")

    channel.subscribe(broken)
    channel.subscribe(received.append)

    channel.publish("hello")

    assert received == ["hello"]
    assert "Subscriber of 'events' raised" in caplog.text


def test_no_subscribers_is_a_no_op() -> None:
    NotificationChannel("empty").publish(object())
