"""
Mock Notification Sink

Simulates sounds and notifications for development.
Nothing is delivered - signals are logged and kept in `sent` for inspection.
"""

import logging
import random
import uuid

from tableside.services.notifications.base import (
    BaseNotificationSink,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class MockNotificationSink(BaseNotificationSink):
    """Mock notification sink for development and tests."""

    def __init__(self, failure_rate: float = 0.0):
        self.failure_rate = failure_rate
        self.sounds = 0
        self.sent: list[tuple[str, str]] = []
        logger.info(f"MockNotificationSink initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def play_sound(self) -> NotificationResult:
        if self._should_fail():
            logger.warning("Mock sound failed (simulated autoplay block)")
            return NotificationResult(
                success=False,
                error_message="Simulated autoplay block",
                provider="mock"
            )

        self.sounds += 1
        logger.info("Mock sound played")
        return NotificationResult(success=True, provider="mock")

    async def show_notification(self, title: str, body: str) -> NotificationResult:
        if self._should_fail():
            logger.warning(f"Mock notification failed (simulated): {title}")
            return NotificationResult(
                success=False,
                error_message="Simulated notification failure",
                provider="mock"
            )

        message_id = f"notif_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append((title, body))
        logger.info(f"Mock notification: {title} | {body[:60]} (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    async def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
