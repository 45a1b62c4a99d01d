"""Synchronous progress notifications for deployment passes."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, List

import structlog

from solution_deployer.deploy.models import ImportUpdateEvent, SolutionDetails

logger = structlog.get_logger()

EventCallback = Callable[[ImportUpdateEvent], None]


class Subscription:
    """Handle returned by ``EventChannel.subscribe``."""

    def __init__(self, channel: "EventChannel", callback: EventCallback):
        self._channel = channel
        self.callback = callback

    @property
    def active(self) -> bool:
        return self._channel.is_subscribed(self)

    def unsubscribe(self) -> None:
        self._channel.unsubscribe(self)


class EventChannel:
    """Fan-out of progress events to any number of subscribers.

    Delivery is synchronous and fire-and-forget: each callback runs on the
    emitting thread and its return value or failure never reaches the
    orchestrator. Subscribing or unsubscribing during an emission affects
    only later events.
    """

    def __init__(self):
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: EventCallback) -> Subscription:
        subscription = Subscription(self, callback)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def is_subscribed(self, subscription: Subscription) -> bool:
        with self._lock:
            return subscription in self._subscriptions

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def emit(self, solution_details: SolutionDetails, message: str) -> ImportUpdateEvent:
        event = ImportUpdateEvent(
            timestamp=datetime.now(),
            solution_details=solution_details,
            message=message,
        )
        with self._lock:
            subscriptions = list(self._subscriptions)

        for subscription in subscriptions:
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(
                    "Progress subscriber failed",
                    solution=solution_details.solution_name,
                    message=message,
                )
        return event
