# src/taskpulse/core/events.py

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

REMINDER_TRIGGERED = "reminder-triggered"

Handler = Callable[[Any], None]


class EventBus:
    """
    In-process event channel.

    Handlers are called synchronously in subscription order. A failing handler is
    logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, channel: str, handler: Handler) -> Callable[[], None]:
        self._handlers[channel].append(handler)
        logger.debug("Subscribed to %s (handlers=%d)", channel, len(self._handlers[channel]))

        def unsubscribe() -> None:
            handlers = self._handlers.get(channel, [])
            if handler in handlers:
                handlers.remove(handler)
                logger.debug("Unsubscribed from %s", channel)

        return unsubscribe

    def emit(self, channel: str, payload: Any) -> int:
        """Deliver payload; returns the number of handlers invoked."""
        handlers = list(self._handlers.get(channel, []))
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                logger.exception("Event handler failed channel=%s", channel)
        return len(handlers)

    def handler_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, []))
