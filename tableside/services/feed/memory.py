"""
In-Process Change Feed

Fans change events out to asyncio queues, one per subscriber. Used in
development mode and in tests, where every "client" lives in one process.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from tableside.schemas import ChangeEvent
from tableside.services.feed.base import BaseChangeFeed

logger = logging.getLogger(__name__)


class MemoryChangeFeed(BaseChangeFeed):
    """Change feed backed by asyncio queues."""

    def __init__(self):
        self._queues: list[asyncio.Queue[ChangeEvent]] = []
        logger.info("MemoryChangeFeed initialized")

    @property
    def provider_name(self) -> str:
        return "memory"

    @property
    def subscriber_count(self) -> int:
        return len(self._queues)

    async def publish(self, event: ChangeEvent) -> None:
        logger.debug(f"Publishing {event.event_type.value} on {event.table} to {len(self._queues)} subscribers")
        for queue in list(self._queues):
            queue.put_nowait(event)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[AsyncIterator[ChangeEvent]]:
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._queues.append(queue)
        try:
            yield self._drain(queue)
        finally:
            self._queues.remove(queue)

    @staticmethod
    async def _drain(queue: asyncio.Queue[ChangeEvent]) -> AsyncIterator[ChangeEvent]:
        while True:
            yield await queue.get()

    async def health_check(self) -> bool:
        return True
