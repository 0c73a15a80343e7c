"""Tests for notification sinks and the NotificationBridge."""

import json
from datetime import datetime

import httpx
import pytest

from tableside.schemas import AlertSeverity, AlertType, ServingGroup, SystemAlert
from tableside.services.notifications import (
    MockNotificationSink,
    NotificationBridge,
    NotificationResult,
    WebhookNotificationSink,
)
from tableside.services.notifications.base import BaseNotificationSink

WEBHOOK_URL = "https://relay.example.test/notify"


def late_alert() -> SystemAlert:
    return SystemAlert(
        id="alert_serving_grp1",
        type=AlertType.LATE_SERVING,
        message="Đoàn A chậm ra đồ (20 phút)",
        details="Lẩu (thiếu 3)",
        severity=AlertSeverity.HIGH,
        timestamp=datetime(2024, 5, 1, 18, 20),
        group_id="grp1",
    )


class ExplodingSink(BaseNotificationSink):
    @property
    def provider_name(self) -> str:
        return "exploding"

    async def play_sound(self) -> NotificationResult:
        raise RuntimeError("autoplay blocked")

    async def show_notification(self, title: str, body: str) -> NotificationResult:
        raise RuntimeError("unreachable")

    async def health_check(self) -> bool:
        return False


class TestWebhookNotificationSink:
    """httpx-backed sink against a mock transport."""

    @pytest.mark.asyncio
    async def test_posts_sound_and_notification(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        sink = WebhookNotificationSink(
            url=WEBHOOK_URL,
            token="secret",
            transport=httpx.MockTransport(handler),
        )
        sound = await sink.play_sound()
        shown = await sink.show_notification("Khách đã đến", "Đoàn A - Tầng 2 (18:00)")
        await sink.close()

        assert sound.success and shown.success
        assert shown.message_id.startswith("notif_")
        assert [json.loads(r.content)["kind"] for r in requests] == ["sound", "notification"]
        body = json.loads(requests[1].content)
        assert body["title"] == "Khách đã đến"
        assert body["body"] == "Đoàn A - Tầng 2 (18:00)"
        assert requests[1].headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_http_error_is_a_failed_result(self):
        sink = WebhookNotificationSink(
            url=WEBHOOK_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        result = await sink.show_notification("x", "y")
        await sink.close()
        assert not result.success
        assert result.provider == "webhook"

    @pytest.mark.asyncio
    async def test_unconfigured_webhook(self):
        sink = WebhookNotificationSink(url=None, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        sink.url = None
        assert not (await sink.play_sound()).success
        assert await sink.health_check() is False
        await sink.close()


class TestNotificationBridge:
    """Alerts and arrivals become a sound plus a notification."""

    @pytest.mark.asyncio
    async def test_alert(self, sink, bridge):
        assert await bridge.notify_alert(late_alert())
        assert sink.sounds == 1
        assert sink.sent == [("Đoàn A chậm ra đồ (20 phút)", "Lẩu (thiếu 3)")]

    @pytest.mark.asyncio
    async def test_arrival_without_location(self, sink, bridge):
        await bridge.notify_arrival(ServingGroup(name="Đoàn A", start_time="18:00"))
        assert sink.sent == [("Khách đã đến", "Đoàn A (18:00)")]

    @pytest.mark.asyncio
    async def test_arrival_can_be_muted(self, sink):
        bridge = NotificationBridge(sink, notify_guest_arrival=False)
        assert await bridge.notify_arrival(ServingGroup(name="Đoàn A")) is False
        assert sink.sent == []
        assert sink.sounds == 0

    @pytest.mark.asyncio
    async def test_sink_failures_are_swallowed(self):
        bridge = NotificationBridge(ExplodingSink())
        assert await bridge.notify_alert(late_alert()) is False

    @pytest.mark.asyncio
    async def test_failed_notification_reports_false(self):
        sink = MockNotificationSink(failure_rate=1.0)
        assert await NotificationBridge(sink).notify_alert(late_alert()) is False
        assert sink.sent == []
