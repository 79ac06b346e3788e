"""User-facing notifications: store them and publish them on the event bus."""

import logging
import uuid

from arbsim.core.event_bus import EventBus, EventType
from arbsim.core.types import Notification, NotificationMetadata, NotificationSink, Severity
from arbsim.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


class Notifier:
    """Creates notifications and fans them out to the sink and event bus."""

    def __init__(self, sink: NotificationSink, event_bus: EventBus) -> None:
        self._sink = sink
        self._event_bus = event_bus
        self._sent = 0

    async def notify(
        self,
        type: str,
        title: str,
        message: str,
        severity: Severity = Severity.INFO,
        metadata: NotificationMetadata | None = None,
    ) -> Notification:
        """
        Store and publish a notification.

        Args:
            type: Notification category (e.g. "trade", "execution").
            title: Short title.
            message: Human-readable message.
            severity: Display severity.
            metadata: Related records.

        Returns:
            The stored notification.
        """
        notification = Notification(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            message=message,
            severity=severity,
            timestamp_ms=get_timestamp_ms(),
            metadata=metadata or NotificationMetadata(),
        )
        stored = await self._sink.add_notification(notification)
        self._sent += 1

        logger.debug(f"Notification [{severity.value}] {title}: {message}")
        await self._event_bus.publish(EventType.NOTIFICATION, stored, source="notifier")
        return stored

    @property
    def sent_count(self) -> int:
        return self._sent
