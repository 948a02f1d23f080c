"""Tests for best-effort notification delivery."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from hirelink.core.errors import Conflict
from hirelink.core.models import VerificationStatus
from hirelink.notifications import (
    LoggingNotificationSink,
    NotificationDispatcher,
    NotificationEvent,
    RecordingNotificationSink,
    WebhookNotificationSink,
)


def make_event(kind: str = "business.approved") -> NotificationEvent:
    return NotificationEvent(
        kind=kind,
        entity_type="business",
        entity_id="b-1",
        recipients=["owner-1"],
        payload={"reason": None},
    )


class TestNotificationDispatcher:
    """Test suite for NotificationDispatcher."""

    @pytest.mark.asyncio
    async def test_delivers_to_sink(self):
        sink = RecordingNotificationSink()
        dispatcher = NotificationDispatcher(sink)

        dispatcher.publish(make_event())
        await dispatcher.drain()

        assert sink.kinds() == ["business.approved"]
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self):
        sink = AsyncMock()
        sink.send.side_effect = RuntimeError("smtp down")
        dispatcher = NotificationDispatcher(sink)

        dispatcher.publish(make_event())
        await dispatcher.drain()

        sink.send.assert_awaited_once()

    def test_publish_without_running_loop_is_dropped(self):
        sink = RecordingNotificationSink()
        dispatcher = NotificationDispatcher(sink)

        dispatcher.publish(make_event())

        assert sink.events == []
        assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_failing_sink_never_rolls_back_a_transition(self, driver, marketplace):
        failing = AsyncMock()
        failing.send.side_effect = ConnectionError("webhook unreachable")
        marketplace.notifications.sink = failing
        cast = await driver.cast()

        business = await marketplace.businesses.register(cast.owner, "Acme")
        approved = await marketplace.businesses.approve(business.id, cast.admin)
        await marketplace.notifications.drain()

        assert approved.verification_status == VerificationStatus.APPROVED
        stored = await marketplace.businesses.get(business.id)
        assert stored.verification_status == VerificationStatus.APPROVED
        assert failing.send.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_operation_publishes_nothing(self, driver, marketplace):
        cast = await driver.cast()
        business = await marketplace.businesses.register(cast.owner, "Acme")
        await marketplace.businesses.approve(business.id, cast.admin)
        before = len(await driver.drain())

        with pytest.raises(Conflict):
            await marketplace.businesses.approve(business.id, cast.admin)

        assert len(await driver.drain()) == before


class TestSinks:
    """Sink implementations."""

    @pytest.mark.asyncio
    async def test_webhook_posts_event_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(204)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            sink = WebhookNotificationSink("https://hooks.example.com/hirelink", client=client)
            await sink.send(make_event("job.approved"))

        assert received[0]["kind"] == "job.approved"
        assert received[0]["recipients"] == ["owner-1"]
        assert "occurred_at" in received[0]

    @pytest.mark.asyncio
    async def test_webhook_raises_on_error_status(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500))

        async with httpx.AsyncClient(transport=transport) as client:
            sink = WebhookNotificationSink("https://hooks.example.com/hirelink", client=client)
            with pytest.raises(httpx.HTTPStatusError):
                await sink.send(make_event())

    @pytest.mark.asyncio
    async def test_logging_sink_accepts_events(self):
        await LoggingNotificationSink().send(make_event())

    def test_event_serialization(self):
        payload = make_event().to_dict()
        assert payload["entity_type"] == "business"
        assert payload["payload"] == {"reason": None}
