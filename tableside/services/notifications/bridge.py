"""
Notification Bridge

Turns newly surfaced alerts and guest arrivals into a sound plus a
notification on the configured sink. Sink failures (blocked autoplay, an
unreachable relay) are logged and swallowed; a missed beep never
interrupts service.
"""

import logging

from tableside.schemas import ServingGroup, SystemAlert
from tableside.services.notifications.base import BaseNotificationSink

logger = logging.getLogger(__name__)

ARRIVAL_TITLE = "Khách đã đến"


class NotificationBridge:
    """Leaf consumer of alert and arrival events."""

    def __init__(
        self,
        sink: BaseNotificationSink,
        notify_guest_arrival: bool = True,
        notify_system_alerts: bool = True,
    ):
        self.sink = sink
        self.notify_guest_arrival = notify_guest_arrival
        self.notify_system_alerts = notify_system_alerts

    async def notify_alert(self, alert: SystemAlert) -> bool:
        if not self.notify_system_alerts:
            return False
        return await self._signal(alert.message, alert.details)

    async def notify_arrival(self, group: ServingGroup) -> bool:
        if not self.notify_guest_arrival:
            return False
        body = f"{group.name} - {group.location}" if group.location else group.name
        if group.start_time:
            body += f" ({group.start_time})"
        return await self._signal(ARRIVAL_TITLE, body)

    async def _signal(self, title: str, body: str) -> bool:
        try:
            sound = await self.sink.play_sound()
            if not sound.success:
                logger.debug(f"Sound not played: {sound.error_message}")
            result = await self.sink.show_notification(title, body)
        except Exception as e:
            logger.warning(f"Notification sink {self.sink.provider_name} failed: {e}")
            return False

        if not result.success:
            logger.warning(f"Notification not shown: {result.error_message}")
        return result.success
