"""
Event fan-out to dashboard subscribers.

Every bus event is serialized once with orjson and offered to each
subscriber's bounded queue without waiting. A subscriber whose queue is
full misses that event; nobody else is affected and the publisher never
blocks.
"""

import asyncio
import logging
from typing import Any

import orjson

from arbsim.config.constants import SUBSCRIBER_QUEUE_SIZE
from arbsim.core.event_bus import Event, EventBus, EventType
from arbsim.core.types import Notification, Opportunity, PriceTick, Trade
from arbsim.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


def event_to_message(event: Event[Any]) -> dict[str, Any]:
    """Build the wire message for a bus event."""
    payload = event.payload
    data: dict[str, Any]

    if isinstance(payload, PriceTick):
        data = payload.to_dict()
    elif isinstance(payload, Opportunity):
        data = {
            "id": payload.id,
            "path": payload.path.to_dict(),
            "profit_percent": payload.profit_percent,
            "fingerprint": payload.fingerprint,
            "timestamp": payload.detected_at_ms,
        }
    elif isinstance(payload, Trade):
        data = {"trade": payload.to_dict()}
    elif isinstance(payload, Notification):
        data = {"notification": payload.to_dict()}
    else:
        data = payload

    return {"type": event.type.value, "data": data}


class EventBroadcaster:
    """
    Bridges the event bus to any number of streaming subscribers.

    Features:
    - One bounded asyncio.Queue per subscriber
    - Drop-on-full per subscriber, counted
    - Single orjson encoding per event
    """

    def __init__(
        self,
        event_bus: EventBus,
        queue_size: int = SUBSCRIBER_QUEUE_SIZE,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._event_bus = event_bus
        self._queue_size = queue_size
        self._metrics = metrics
        self._subscribers: set[asyncio.Queue[bytes]] = set()
        self._attached = False
        self._dropped = 0
        self._delivered = 0

    def attach(self) -> None:
        """Start receiving every event type from the bus."""
        if not self._attached:
            self._event_bus.subscribe_all(self._on_event)
            self._attached = True

    def detach(self) -> None:
        if self._attached:
            for event_type in EventType:
                self._event_bus.unsubscribe(event_type, self._on_event)
            self._attached = False

    def subscribe(self) -> asyncio.Queue[bytes]:
        """Register a subscriber and return its queue of encoded messages."""
        queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.info(f"Subscriber connected ({len(self._subscribers)} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue[bytes]) -> None:
        self._subscribers.discard(queue)
        logger.info(f"Subscriber disconnected ({len(self._subscribers)} total)")

    def broadcast(self, message: dict[str, Any]) -> int:
        """
        Offer a message to every subscriber.

        Returns:
            Number of subscribers the message was queued for.
        """
        if not self._subscribers:
            return 0

        encoded = orjson.dumps(message)
        delivered = 0
        for queue in self._subscribers:
            try:
                queue.put_nowait(encoded)
                delivered += 1
            except asyncio.QueueFull:
                self._dropped += 1
                if self._metrics:
                    self._metrics.increment_counter("broadcast.dropped")

        self._delivered += delivered
        return delivered

    def _on_event(self, event: Event[Any]) -> None:
        self.broadcast(event_to_message(event))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def dropped_count(self) -> int:
        return self._dropped

    @property
    def delivered_count(self) -> int:
        return self._delivered
