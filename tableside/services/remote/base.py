"""
Remote Store Abstract Base Class

Defines the interface to the shared durable store every floor client reads
from and writes to. The store is eventually consistent and last-write-wins
on a full row: there are no partial updates and no transactions spanning
more than one row.

After each successful write an implementation publishes a ChangeEvent on
its change feed, standing in for database change triggers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from tableside.schemas import AttendanceLog, ChangeEvent, ChangeType, ServingGroup
from tableside.services.feed.base import BaseChangeFeed, ChangeFeedError

logger = logging.getLogger(__name__)

SERVING_GROUPS = "serving_groups"
ATTENDANCE_LOGS = "attendance_logs"
DISMISSED_ALERTS = "dismissed_alerts"

COLLECTIONS = (SERVING_GROUPS, ATTENDANCE_LOGS, DISMISSED_ALERTS)


class RemoteStoreError(Exception):
    """Raised when a remote read or write is rejected or times out."""


@dataclass
class RemoteSnapshot:
    """Full contents of the collections this core cares about."""
    serving_groups: list[ServingGroup] = field(default_factory=list)
    attendance_logs: list[AttendanceLog] = field(default_factory=list)
    dismissed_alert_ids: set[str] = field(default_factory=set)


def _parse_rows(model: type[BaseModel], table: str, rows: list[dict[str, Any]]) -> list[Any]:
    parsed = []
    for row in rows:
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping invalid {table} row {row.get('id')}: {e.error_count()} errors")
    return parsed


def snapshot_from_rows(rows: dict[str, list[dict[str, Any]]]) -> RemoteSnapshot:
    """Build a snapshot from raw rows, skipping rows that fail validation."""
    return RemoteSnapshot(
        serving_groups=_parse_rows(ServingGroup, SERVING_GROUPS, rows.get(SERVING_GROUPS, [])),
        attendance_logs=_parse_rows(AttendanceLog, ATTENDANCE_LOGS, rows.get(ATTENDANCE_LOGS, [])),
        dismissed_alert_ids={
            str(r["id"]) for r in rows.get(DISMISSED_ALERTS, []) if r.get("id") is not None
        },
    )


class BaseRemoteStore(ABC):
    """
    Abstract base class for the shared store.

    Example:
        >>> store = get_remote_store()
        >>> await store.upsert("serving_groups", group.model_dump(mode="json"))
        >>> snapshot = await store.fetch_all()
    """

    def __init__(self, feed: Optional[BaseChangeFeed] = None):
        self.feed = feed

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def fetch_all(self) -> RemoteSnapshot:
        """Read every collection in full."""
        pass

    @abstractmethod
    async def upsert(self, table: str, row: dict[str, Any]) -> None:
        """
        Insert or fully replace one row, keyed by row["id"].

        Raises:
            RemoteStoreError: If the write is rejected
        """
        pass

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> None:
        """
        Delete one row; deleting a missing row is not an error.

        Raises:
            RemoteStoreError: If the delete is rejected
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check store connectivity."""
        pass

    async def initialize(self) -> None:
        """Prepare the backing storage (create tables, open pools)."""
        return None

    async def close(self) -> None:
        """Release connections held by the store."""
        return None

    async def _publish(
        self,
        table: str,
        event_type: ChangeType,
        old: Optional[dict[str, Any]] = None,
        new: Optional[dict[str, Any]] = None,
    ) -> None:
        if self.feed is None:
            return
        event = ChangeEvent(table=table, event_type=event_type, old=old, new=new)
        try:
            await self.feed.publish(event)
        except ChangeFeedError as e:
            # The write itself succeeded; peers catch up on their next reload.
            logger.error(f"Change event for {table} not published: {e}")
