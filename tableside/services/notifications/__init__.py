"""
Notification Sink Factory

Returns Mock or Webhook notification sink based on ENV_MODE.
"""

import logging
from functools import lru_cache

from tableside.core.config import get_settings
from tableside.services.notifications.base import (
    BaseNotificationSink,
    NotificationResult,
)
from tableside.services.notifications.bridge import NotificationBridge
from tableside.services.notifications.mock import MockNotificationSink
from tableside.services.notifications.real import WebhookNotificationSink

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_sink() -> BaseNotificationSink:
    """Get the configured notification sink."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Sink: Using MockNotificationSink (development mode)")
        return MockNotificationSink()
    else:
        logger.info(f"Notification Sink: Using WebhookNotificationSink ({settings.env_mode.value} mode)")
        return WebhookNotificationSink()


def reset_notification_sink() -> None:
    """Clear the cached sink instance."""
    get_notification_sink.cache_clear()


__all__ = [
    "get_notification_sink",
    "reset_notification_sink",
    "BaseNotificationSink",
    "NotificationBridge",
    "NotificationResult",
    "MockNotificationSink",
    "WebhookNotificationSink",
]
