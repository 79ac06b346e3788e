"""
Internal event bus for decoupled communication.

The engine publishes price, opportunity, trade and notification events
here; the dashboard broadcaster and metrics subscribe without the core
knowing about them.
"""

import logging
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from arbsim.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Event kinds, valued by their wire tag."""

    PRICE = "price"
    OPPORTUNITY = "opportunity"
    TRADE = "trade"
    NOTIFICATION = "notification"


T = TypeVar("T")


@dataclass(slots=True)
class Event(Generic[T]):
    """Generic event with typed payload."""

    type: EventType
    payload: T
    timestamp_ms: int = 0
    source: str = ""


# Type alias for event handlers
EventHandler = Callable[[Event[Any]], Awaitable[None]]
SyncEventHandler = Callable[[Event[Any]], None]


class EventBus:
    """
    Publish/subscribe hub for simulator events.

    Features:
    - Async and sync handler support
    - Priority-based handler ordering
    - Error isolation per handler, so a failing subscriber never
      interrupts the publisher
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[tuple[int, EventHandler]]] = defaultdict(list)
        self._sync_handlers: dict[EventType, list[tuple[int, SyncEventHandler]]] = defaultdict(
            list
        )
        self._published: dict[EventType, int] = defaultdict(int)

    def subscribe(
        self,
        event_type: EventType,
        handler: EventHandler,
        priority: int = 0,
    ) -> None:
        """
        Subscribe an async handler to an event type.

        Args:
            event_type: Event type to handle.
            handler: Async handler function.
            priority: Handler priority (higher = earlier execution).
        """
        self._handlers[event_type].append((priority, handler))
        self._handlers[event_type].sort(key=lambda x: x[0], reverse=True)

    def subscribe_sync(
        self,
        event_type: EventType,
        handler: SyncEventHandler,
        priority: int = 0,
    ) -> None:
        """Subscribe a sync handler to an event type."""
        self._sync_handlers[event_type].append((priority, handler))
        self._sync_handlers[event_type].sort(key=lambda x: x[0], reverse=True)

    def subscribe_all(self, handler: SyncEventHandler, priority: int = 0) -> None:
        """Subscribe a sync handler to every event type."""
        for event_type in EventType:
            self.subscribe_sync(event_type, handler, priority)

    def unsubscribe(
        self,
        event_type: EventType,
        handler: EventHandler | SyncEventHandler,
    ) -> bool:
        """
        Unsubscribe a handler.

        Returns:
            True if handler was found and removed.
        """
        # Equality, not identity: each `obj.method` access is a new bound method.
        for handlers in (self._handlers[event_type], self._sync_handlers[event_type]):
            for i, (_, registered) in enumerate(handlers):
                if registered == handler:
                    handlers.pop(i)
                    return True
        return False

    async def publish(self, event_type: EventType, payload: Any, source: str = "") -> Event[Any]:
        """
        Publish a payload to all subscribers of its type.

        Sync handlers run first, then async handlers in priority order.

        Returns:
            The published event.
        """
        event: Event[Any] = Event(
            type=event_type,
            payload=payload,
            timestamp_ms=get_timestamp_ms(),
            source=source,
        )
        self._published[event_type] += 1

        for _, sync_handler in self._sync_handlers[event_type]:
            try:
                sync_handler(event)
            except Exception as e:
                logger.error(f"Sync handler error for {event_type.value}: {e}")

        for _, async_handler in self._handlers[event_type]:
            try:
                await async_handler(event)
            except Exception as e:
                logger.error(f"Async handler error for {event_type.value}: {e}")

        return event

    def handler_count(self, event_type: EventType) -> int:
        """Get number of handlers for an event type."""
        return len(self._handlers[event_type]) + len(self._sync_handlers[event_type])

    def published_count(self, event_type: EventType) -> int:
        """Get number of events published for a type."""
        return self._published[event_type]

    def clear(self) -> None:
        """Remove all handlers."""
        self._handlers.clear()
        self._sync_handlers.clear()
