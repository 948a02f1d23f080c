"""Best-effort notification of state transitions."""

from .dispatcher import NotificationDispatcher
from .sinks import (
    LoggingNotificationSink,
    NotificationEvent,
    NotificationSink,
    RecordingNotificationSink,
    WebhookNotificationSink,
    create_default_sink,
)

__all__ = [
    "NotificationDispatcher",
    "LoggingNotificationSink",
    "NotificationEvent",
    "NotificationSink",
    "RecordingNotificationSink",
    "WebhookNotificationSink",
    "create_default_sink",
]
