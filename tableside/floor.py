"""
Service Floor

Wires one floor client together: change feed, remote store, local
ServingGroupStore, NotificationBridge, SyncReconciler and AlertEngine, and
owns the two background tasks (alert ticker and realtime listener).
"""

import asyncio
import logging
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Optional
from zoneinfo import ZoneInfo

from tableside.core.config import Settings, get_settings
from tableside.services.alerts import AlertEngine
from tableside.services.feed import BaseChangeFeed, get_change_feed
from tableside.services.notifications import (
    BaseNotificationSink,
    NotificationBridge,
    get_notification_sink,
)
from tableside.services.reconciler import SyncReconciler
from tableside.services.remote import BaseRemoteStore, create_remote_store
from tableside.services.store import ServingGroupStore

logger = logging.getLogger(__name__)


def local_clock(tz_name: str) -> Callable[[], datetime]:
    """Wall clock of the restaurant floor."""
    tz = ZoneInfo(tz_name)
    return lambda: datetime.now(tz)


class ServiceFloor:
    """
    One client's view of the floor and its background machinery.

    Example:
        >>> floor = ServiceFloor()
        >>> await floor.start()
        >>> floor.store.create(group)
        >>> await floor.stop()
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        feed: Optional[BaseChangeFeed] = None,
        remote: Optional[BaseRemoteStore] = None,
        sink: Optional[BaseNotificationSink] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings or get_settings()
        self.feed = feed if feed is not None else get_change_feed()
        self.remote = remote if remote is not None else create_remote_store(self.feed)
        self.sink = sink if sink is not None else get_notification_sink()

        self.store = ServingGroupStore(clock or local_clock(self.settings.timezone))
        self.bridge = NotificationBridge(
            self.sink,
            notify_guest_arrival=self.settings.notify_guest_arrival,
            notify_system_alerts=self.settings.notify_system_alerts,
        )
        self.reconciler = SyncReconciler(
            self.store,
            self.remote,
            feed=self.feed,
            bridge=self.bridge,
            retry_seconds=self.settings.realtime_retry_seconds,
        )
        self.alerts = AlertEngine(
            self.store,
            bridge=self.bridge,
            threshold_minutes=self.settings.late_alert_minutes,
        )
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    async def start(self) -> None:
        await self.remote.initialize()
        await self.reconciler.reload()
        # Fills the alert views; announcing is left to the first tick.
        self.alerts.refresh()

        self._tasks = [
            asyncio.create_task(self._run_ticker(), name="alert-ticker"),
            asyncio.create_task(self.reconciler.listen(), name="realtime-listener"),
        ]
        logger.info(
            f"Service floor started (store={self.remote.provider_name}, "
            f"feed={self.feed.provider_name}, sink={self.sink.provider_name})"
        )

    async def _run_ticker(self) -> None:
        interval = self.settings.alert_tick_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.alerts.tick()
            except Exception as e:
                logger.exception(f"Alert tick failed: {e}")

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        await self.reconciler.flush()
        self.reconciler.close()

        await self.remote.close()
        await self.feed.close()
        await self.sink.close()
        logger.info("Service floor stopped")

    async def health(self) -> dict[str, Any]:
        return {
            "store": await self.remote.health_check(),
            "feed": await self.feed.health_check(),
            "notifications": await self.sink.health_check(),
        }


@lru_cache()
def get_service_floor() -> ServiceFloor:
    """Get the process-wide service floor."""
    return ServiceFloor()


def reset_service_floor() -> None:
    get_service_floor.cache_clear()
