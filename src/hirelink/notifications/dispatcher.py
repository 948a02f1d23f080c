"""Fire-and-forget delivery of notification events."""

import asyncio
from typing import Optional, Set

from hirelink.notifications.sinks import NotificationEvent, NotificationSink, create_default_sink
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationDispatcher:
    """
    Hands events to a sink without making the caller wait.

    Events are published only after the owning transaction has committed.
    A sink failure is logged and dropped; it never reaches the caller and
    never undoes the state change that produced the event.
    """

    def __init__(self, sink: Optional[NotificationSink] = None):
        self.sink = sink or create_default_sink()
        self.logger = logger.bind(component="notification_dispatcher")
        self._pending: Set[asyncio.Task] = set()

    def publish(self, event: NotificationEvent) -> None:
        try:
            task = asyncio.get_running_loop().create_task(self._deliver(event))
        except RuntimeError:
            self.logger.warning("No running event loop; notification dropped", kind=event.kind)
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: NotificationEvent) -> None:
        try:
            await self.sink.send(event)
        except Exception as e:
            self.logger.error(
                "Notification delivery failed",
                kind=event.kind,
                entity_id=event.entity_id,
                error=str(e),
                error_type=type(e).__name__,
            )

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every in-flight delivery to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
