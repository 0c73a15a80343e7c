"""
Redis Change Feed

Production change feed on Redis pub/sub. Every write to the shared store
publishes one JSON-encoded ChangeEvent on `settings.realtime_channel`; every
floor client subscribes to the same channel.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from tableside.core.config import get_settings
from tableside.schemas import ChangeEvent
from tableside.services.feed.base import BaseChangeFeed, ChangeFeedError

logger = logging.getLogger(__name__)


class RedisChangeFeed(BaseChangeFeed):
    """Change feed over Redis pub/sub."""

    def __init__(self, redis_url: Optional[str] = None, channel: Optional[str] = None):
        settings = get_settings()
        self.channel = channel or settings.realtime_channel
        self._client = redis.Redis.from_url(redis_url or settings.redis_url)
        logger.info(f"RedisChangeFeed initialized (channel={self.channel})")

    @property
    def provider_name(self) -> str:
        return "redis"

    async def publish(self, event: ChangeEvent) -> None:
        try:
            await self._client.publish(self.channel, event.model_dump_json())
        except RedisError as e:
            raise ChangeFeedError(f"Publish failed: {e}") from e

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[AsyncIterator[ChangeEvent]]:
        pubsub = self._client.pubsub()
        try:
            await pubsub.subscribe(self.channel)
        except RedisError as e:
            await pubsub.aclose()
            raise ChangeFeedError(f"Subscribe failed: {e}") from e

        try:
            yield self._listen(pubsub)
        finally:
            try:
                await pubsub.unsubscribe(self.channel)
            except RedisError as e:
                logger.debug(f"Unsubscribe from {self.channel} failed: {e}")
            await pubsub.aclose()

    async def _listen(self, pubsub) -> AsyncIterator[ChangeEvent]:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    yield ChangeEvent.model_validate_json(message["data"])
                except ValidationError as e:
                    logger.warning(f"Dropping malformed change event: {e}")
        except RedisError as e:
            raise ChangeFeedError(f"Subscription lost: {e}") from e

    async def health_check(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            logger.error(f"Redis health check failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.aclose()
