"""
Webhook Notification Sink

Production sink: every sound and notification is POSTed as JSON to the
configured webhook, which relays it to the floor devices (service worker
push, wall display, ...). How the relay delivers is outside this service.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from tableside.core.config import get_settings
from tableside.services.notifications.base import (
    BaseNotificationSink,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class WebhookNotificationSink(BaseNotificationSink):
    """Notification sink posting events to a webhook with httpx."""

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.url = url or settings.notification_webhook_url
        token = token or settings.notification_webhook_token

        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

        if not self.url:
            logger.warning("Notification webhook URL not configured")
        logger.info("WebhookNotificationSink initialized")

    @property
    def provider_name(self) -> str:
        return "webhook"

    async def _post(self, payload: dict[str, Any]) -> NotificationResult:
        if not self.url:
            return NotificationResult(
                success=False,
                error_message="Webhook not configured",
                provider="webhook"
            )

        message_id = f"notif_{uuid.uuid4().hex[:12]}"
        payload = {
            **payload,
            "id": message_id,
            "sent_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            response = await self._client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Notification webhook error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="webhook"
            )

        return NotificationResult(success=True, message_id=message_id, provider="webhook")

    async def play_sound(self) -> NotificationResult:
        return await self._post({"kind": "sound"})

    async def show_notification(self, title: str, body: str) -> NotificationResult:
        result = await self._post({"kind": "notification", "title": title, "body": body})
        if result.success:
            logger.info(f"Notification sent: {title} (ID: {result.message_id})")
        return result

    async def health_check(self) -> bool:
        return bool(self.url)

    async def close(self) -> None:
        await self._client.aclose()
