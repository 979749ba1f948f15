from __future__ import annotations

"""Publish/subscribe channels for controller notifications.

Each channel keeps an explicit subscriber list and fans a payload out to the
subscribers synchronously, in subscription order, on the publishing thread. A
failing subscriber is logged and skipped: notifications are for observers such
as progress displays and must not change the outcome of a run.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class NotificationChannel(Generic[T]):
    """Named subscriber list with synchronous fan-out."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Add a subscriber.

        Returns:
            A callable removing this subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            self.unsubscribe(callback)

        return _unsubscribe

    def unsubscribe(self, callback: Subscriber) -> bool:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                return False
        return True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, payload: T) -> None:
        with self._lock:
            subscribers = tuple(self._subscribers)
        for callback in subscribers:
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber of '{self.name}' raised")
