"""AsyncIOBus -- default EventBus implementation using in-process async pub/sub.

Events are dispatched to subscribers via asyncio.create_task(). Nothing is
persisted; the bus only tells readers that state changed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from core.models.events import Event

logger = logging.getLogger(__name__)

Callback = Callable[[Event], Coroutine[Any, Any, None]]


class AsyncIOBus:
    """In-process async pub/sub event bus.

    Implements the EventBus protocol.

    Usage:
        bus = AsyncIOBus()
        bus.subscribe("sync.ready", my_handler)
        await bus.publish(event)
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Callback]] = {}
        self._wildcard_subscribers: list[Callback] = []

    async def publish(self, event: Event) -> None:
        """Dispatch an event to its type subscribers and wildcard subscribers."""
        callbacks = self._subscribers.get(event.type, []) + self._wildcard_subscribers

        if not callbacks:
            logger.debug("No subscribers for event type: %s", event.type)
            return

        logger.debug(
            "Publishing %s to %d subscriber(s) [correlation=%s]",
            event.type,
            len(callbacks),
            event.correlation_id,
        )

        tasks = [asyncio.create_task(self._safe_invoke(cb, event)) for cb in callbacks]

        # Wait for all to complete (don't let failures propagate)
        await asyncio.gather(*tasks, return_exceptions=True)

    def subscribe(self, event_type: str, callback: Callback) -> None:
        """Register a callback for events of the given type.

        Use event_type="*" to subscribe to all events.
        """
        if event_type == "*":
            self._wildcard_subscribers.append(callback)
        else:
            self._subscribers.setdefault(event_type, []).append(callback)
        logger.debug("Subscribed to '%s': %s", event_type, callback)

    def unsubscribe(self, event_type: str, callback: Callback) -> None:
        """Remove a previously registered callback."""
        if event_type == "*":
            if callback in self._wildcard_subscribers:
                self._wildcard_subscribers.remove(callback)
        elif event_type in self._subscribers:
            if callback in self._subscribers[event_type]:
                self._subscribers[event_type].remove(callback)

    async def _safe_invoke(self, callback: Callback, event: Event) -> None:
        """Invoke a callback, catching and logging any exceptions."""
        try:
            await callback(event)
        except Exception:
            logger.exception(
                "Error in event handler for %s [correlation=%s]",
                event.type,
                event.correlation_id,
            )
