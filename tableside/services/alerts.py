"""
Alert Engine

Derives the operational alert set from current state on every clock tick.
Alerts are never stored: their ids are deterministic per condition
(`alert_serving_<groupId>`, `alert_late_<logId>`), which lets a persisted
set of dismissed ids keep an acknowledged condition out of the active view
on every later recomputation.

Times are compared as minutes since midnight, the way arrival times are
recorded ("HH:MM"); a negative difference means the service crossed
midnight and wraps by one day.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from tableside.schemas import (
    AlertSeverity,
    AlertType,
    AttendanceLog,
    AttendanceStatus,
    GroupStatus,
    ServingGroup,
    SystemAlert,
)
from tableside.services.notifications.bridge import NotificationBridge
from tableside.services.store import ServingGroupStore

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 1440


def serving_alert_id(group_id: str) -> str:
    return f"alert_serving_{group_id}"


def late_alert_id(log_id: str) -> str:
    return f"alert_late_{log_id}"


def minutes_of_day(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")[:2]
    return int(hours) * 60 + int(minutes)


def elapsed_minutes(start_time: str, now: datetime) -> int:
    """Minutes from an "HH:MM" start to `now`, wrapping past midnight."""
    elapsed = now.hour * 60 + now.minute - minutes_of_day(start_time)
    if elapsed < 0:
        elapsed += MINUTES_PER_DAY
    return elapsed


def serving_alert(group: ServingGroup, now: datetime, threshold_minutes: int) -> Optional[SystemAlert]:
    """HIGH alert for an arrived, active group still missing dishes past the threshold."""
    if group.status != GroupStatus.ACTIVE or group.start_time is None:
        return None

    elapsed = elapsed_minutes(group.start_time, now)
    if elapsed < threshold_minutes:
        return None

    missing = [i for i in group.items if i.served_quantity < i.total_quantity]
    if not missing:
        return None

    details = ", ".join(f"{i.name} (thiếu {i.total_quantity - i.served_quantity})" for i in missing)
    return SystemAlert(
        id=serving_alert_id(group.id),
        type=AlertType.LATE_SERVING,
        message=f"Đoàn {group.name} chậm ra đồ ({elapsed} phút)",
        details=details,
        severity=AlertSeverity.HIGH,
        timestamp=now,
        group_id=group.id,
    )


def attendance_alert(log: AttendanceLog, now: datetime) -> SystemAlert:
    return SystemAlert(
        id=late_alert_id(log.id),
        type=AlertType.ATTENDANCE_VIOLATION,
        message=f"{log.employee_name or log.employee_id} đi muộn",
        details=f"Vào ca lúc {log.check_in or '--:--'}, muộn {log.late_minutes} phút",
        severity=AlertSeverity.MEDIUM,
        timestamp=now,
    )


def compute_alerts(
    groups: Iterable[ServingGroup],
    logs: Iterable[AttendanceLog],
    now: datetime,
    threshold_minutes: int,
) -> list[SystemAlert]:
    """Full alert set for the given state at `now`."""
    alerts = []
    for group in groups:
        alert = serving_alert(group, now, threshold_minutes)
        if alert is not None:
            alerts.append(alert)

    today = now.date().isoformat()
    for log in logs:
        if log.date == today and log.status == AttendanceStatus.LATE:
            alerts.append(attendance_alert(log, now))
    return alerts


class AlertEngine:
    """
    Recomputes alerts from a ServingGroupStore and surfaces new ones.

    The exposed `alerts` list keeps its identity for as long as the set of
    alert ids is unchanged, so views holding it need not re-render. An id
    is announced to the NotificationBridge once, on the tick it first
    appears, unless it is already dismissed.
    """

    def __init__(
        self,
        store: ServingGroupStore,
        bridge: Optional[NotificationBridge] = None,
        threshold_minutes: int = 15,
    ):
        self.store = store
        self.bridge = bridge
        self.threshold_minutes = threshold_minutes
        self._alerts: list[SystemAlert] = []
        self._ids: frozenset[str] = frozenset()
        # Ids present on the last tick; only tick() moves it forward.
        self._announced: frozenset[str] = frozenset()

    @property
    def alerts(self) -> list[SystemAlert]:
        return self._alerts

    @property
    def active_alerts(self) -> list[SystemAlert]:
        dismissed = self.store.dismissed_alert_ids
        return [a for a in self._alerts if a.id not in dismissed]

    @property
    def history_alerts(self) -> list[SystemAlert]:
        """Alerts whose condition still holds but which were acknowledged."""
        dismissed = self.store.dismissed_alert_ids
        return [a for a in self._alerts if a.id in dismissed]

    def refresh(self, now: Optional[datetime] = None) -> list[SystemAlert]:
        """
        Recompute the alert set without announcing anything.

        Returns:
            Alerts whose ids were absent on the previous tick and are
            not dismissed
        """
        now = now or self.store.now()
        computed = compute_alerts(
            self.store.groups,
            self.store.attendance_logs,
            now,
            self.threshold_minutes,
        )
        ids = frozenset(a.id for a in computed)
        dismissed = self.store.dismissed_alert_ids
        fresh = [a for a in computed if a.id not in self._announced and a.id not in dismissed]

        if ids != self._ids:
            logger.debug(f"Alert set changed: {len(self._ids)} -> {len(ids)}")
            self._alerts = computed
            self._ids = ids
        return fresh

    async def tick(self, now: Optional[datetime] = None) -> list[SystemAlert]:
        fresh = self.refresh(now)
        self._announced = self._ids
        for alert in fresh:
            logger.info(f"New alert {alert.id}: {alert.message}")
            if self.bridge is not None:
                await self.bridge.notify_alert(alert)
        return fresh

    def dismiss(self, alert_id: str) -> None:
        """Acknowledge an alert; the condition may persist but stays out of the active view."""
        self.store.dismiss_alert(alert_id)
        logger.info(f"Alert dismissed: {alert_id}")
