"""Synchronous publish/subscribe for stepper notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

TICK_COMPLETE = "tick_complete"
DESTRUCTION_OCCURRED = "destruction_occurred"
TIME_RESET = "time_reset"

Handler = Callable[[Any], None]


class EventChannel:
    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register `handler` for `topic`; the returned callable unsubscribes it."""
        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> None:
        # Handlers run in subscription order; errors propagate to the publisher.
        for handler in list(self._handlers.get(topic, ())):
            handler(payload)

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))
