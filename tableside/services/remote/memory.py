"""
In-Memory Remote Store

Simulates the shared store for development without a database. Rows are
deep-copied on the way in and out so clients never share mutable state.

Behavior:
    - Optional simulated network latency
    - Configurable random write failure rate for exercising the
      log-but-keep-local-state path
"""

import asyncio
import copy
import logging
import random
from typing import Any, Optional

from tableside.schemas import ChangeType
from tableside.services.feed.base import BaseChangeFeed
from tableside.services.remote.base import (
    COLLECTIONS,
    BaseRemoteStore,
    RemoteSnapshot,
    RemoteStoreError,
    snapshot_from_rows,
)

logger = logging.getLogger(__name__)


class MemoryRemoteStore(BaseRemoteStore):
    """
    Shared store held in a dict of collections.

    Attributes:
        failure_rate: Probability of a simulated write failure (0.0-1.0)
        min_latency: Minimum response time in seconds
        max_latency: Maximum response time in seconds
    """

    def __init__(
        self,
        feed: Optional[BaseChangeFeed] = None,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        super().__init__(feed)
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self._tables: dict[str, dict[str, dict[str, Any]]] = {t: {} for t in COLLECTIONS}
        logger.info(f"MemoryRemoteStore initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "memory"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def rows(self, table: str) -> list[dict[str, Any]]:
        return copy.deepcopy(list(self._tables.get(table, {}).values()))

    async def fetch_all(self) -> RemoteSnapshot:
        await self._simulate_latency()
        return snapshot_from_rows({t: self.rows(t) for t in self._tables})

    async def upsert(self, table: str, row: dict[str, Any]) -> None:
        await self._simulate_latency()
        if self._should_fail():
            logger.warning(f"Mock upsert failed (simulated) on {table}/{row.get('id')}")
            raise RemoteStoreError("Simulated write failure")
        if row.get("id") is None:
            raise RemoteStoreError(f"Row for {table} has no id")

        rows = self._tables.setdefault(table, {})
        row_id = str(row["id"])
        old = rows.get(row_id)
        new = copy.deepcopy(row)
        rows[row_id] = new

        event_type = ChangeType.UPDATE if old is not None else ChangeType.INSERT
        await self._publish(table, event_type, old=copy.deepcopy(old), new=copy.deepcopy(new))

    async def delete(self, table: str, row_id: str) -> None:
        await self._simulate_latency()
        if self._should_fail():
            logger.warning(f"Mock delete failed (simulated) on {table}/{row_id}")
            raise RemoteStoreError("Simulated delete failure")

        old = self._tables.get(table, {}).pop(str(row_id), None)
        if old is not None:
            await self._publish(table, ChangeType.DELETE, old=old)

    async def health_check(self) -> bool:
        return True
