"""Notification events and the sinks that receive them."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

import httpx

from hirelink.config import settings
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class NotificationEvent:
    """Something that happened to a record, addressed to the accounts who care."""
    kind: str  # e.g. "business.approved", "application.round_update"
    entity_type: str
    entity_id: str
    recipients: List[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "kind": self.kind,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "recipients": self.recipients,
            "payload": self.payload,
            "occurred_at": self.occurred_at.isoformat(),
        }


class NotificationSink(Protocol):
    """Anything that can receive an event."""

    async def send(self, event: NotificationEvent) -> None:
        ...


class LoggingNotificationSink:
    """Writes events to the structured log."""

    def __init__(self):
        self.logger = logger.bind(component="notification_log")

    async def send(self, event: NotificationEvent) -> None:
        self.logger.info(
            "Notification",
            kind=event.kind,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            recipients=event.recipients,
        )


class WebhookNotificationSink:
    """POSTs each event as JSON to a configured URL."""

    def __init__(self, url: str, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self.timeout = timeout or settings.notification_timeout_seconds
        self._client = client
        self.logger = logger.bind(component="notification_webhook")

    async def send(self, event: NotificationEvent) -> None:
        if self._client is not None:
            response = await self._client.post(self.url, json=event.to_dict(), timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=event.to_dict())
        response.raise_for_status()
        self.logger.debug("Webhook delivered", kind=event.kind, status_code=response.status_code)


class RecordingNotificationSink:
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[NotificationEvent] = []

    async def send(self, event: NotificationEvent) -> None:
        self.events.append(event)

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]


def create_default_sink() -> NotificationSink:
    """Webhook sink when a URL is configured, log sink otherwise."""
    if settings.notification_webhook_url:
        return WebhookNotificationSink(settings.notification_webhook_url)
    return LoggingNotificationSink()
