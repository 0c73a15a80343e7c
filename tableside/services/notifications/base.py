"""
Notification Sink Abstract Base Class

Defines the interface for the user-facing signals raised on the floor: an
attention sound and a titled notification. Delivery is fire-and-forget;
implementations report failure through NotificationResult instead of
raising, and callers never retry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class NotificationResult:
    """Result from sending a signal."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationSink(ABC):
    """Abstract base class for notification sinks."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def play_sound(self) -> NotificationResult:
        """Play the attention sound on the floor devices."""
        pass

    @abstractmethod
    async def show_notification(self, title: str, body: str) -> NotificationResult:
        """Show a notification with a title and body."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check sink connectivity."""
        pass

    async def close(self) -> None:
        """Release resources held by the sink."""
        return None
