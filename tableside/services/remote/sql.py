"""
SQL Remote Store

Production implementation of the shared store on SQLAlchemy async.
Each collection row lives in the `records` table as a JSON payload; an
upsert reads the previous payload in the same transaction so the change
event can carry both old and new rows.
"""

import logging
from collections import defaultdict
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from tableside.database import build_session_maker, init_db
from tableside.models import Record
from tableside.schemas import ChangeType
from tableside.services.feed.base import BaseChangeFeed
from tableside.services.remote.base import (
    BaseRemoteStore,
    RemoteSnapshot,
    RemoteStoreError,
    snapshot_from_rows,
)

logger = logging.getLogger(__name__)


class SqlRemoteStore(BaseRemoteStore):
    """Shared store backed by a SQL database."""

    def __init__(self, engine: AsyncEngine, feed: Optional[BaseChangeFeed] = None):
        super().__init__(feed)
        self._engine = engine
        self._session_maker = build_session_maker(engine)
        logger.info("SqlRemoteStore initialized")

    @property
    def provider_name(self) -> str:
        return "sql"

    async def initialize(self) -> None:
        await init_db(self._engine)

    async def close(self) -> None:
        await self._engine.dispose()

    async def fetch_all(self) -> RemoteSnapshot:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(Record).order_by(Record.created_at.desc(), Record.id)
                )
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Fetch failed: {e}") from e

        rows: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for record in records:
            rows[record.table_name].append(record.payload)
        return snapshot_from_rows(rows)

    async def upsert(self, table: str, row: dict[str, Any]) -> None:
        if row.get("id") is None:
            raise RemoteStoreError(f"Row for {table} has no id")
        row_id = str(row["id"])

        try:
            async with self._session_maker() as session:
                record = await session.get(Record, (table, row_id))
                old = dict(record.payload) if record is not None else None
                if record is None:
                    session.add(Record(table_name=table, id=row_id, payload=row))
                else:
                    record.payload = row
                await session.commit()
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Upsert of {table}/{row_id} failed: {e}") from e

        event_type = ChangeType.UPDATE if old is not None else ChangeType.INSERT
        await self._publish(table, event_type, old=old, new=row)

    async def delete(self, table: str, row_id: str) -> None:
        try:
            async with self._session_maker() as session:
                record = await session.get(Record, (table, str(row_id)))
                if record is None:
                    return
                old = dict(record.payload)
                await session.delete(record)
                await session.commit()
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"Delete of {table}/{row_id} failed: {e}") from e

        await self._publish(table, ChangeType.DELETE, old=old)

    async def health_check(self) -> bool:
        try:
            async with self._session_maker() as session:
                await session.execute(select(func.count(Record.id)))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Store health check failed: {e}")
            return False
