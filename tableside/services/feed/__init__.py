"""
Change Feed Factory

Returns the in-process or Redis change feed based on ENV_MODE.
"""

import logging
from functools import lru_cache

from tableside.core.config import get_settings
from tableside.services.feed.base import BaseChangeFeed, ChangeFeedError
from tableside.services.feed.memory import MemoryChangeFeed
from tableside.services.feed.redis_feed import RedisChangeFeed

logger = logging.getLogger(__name__)


@lru_cache()
def get_change_feed() -> BaseChangeFeed:
    """Get the configured change feed."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Change Feed: Using MemoryChangeFeed (development mode)")
        return MemoryChangeFeed()

    logger.info(f"Change Feed: Using RedisChangeFeed ({settings.env_mode.value} mode)")
    return RedisChangeFeed()


def reset_change_feed() -> None:
    """Clear the cached feed instance."""
    get_change_feed.cache_clear()


__all__ = [
    "get_change_feed",
    "reset_change_feed",
    "BaseChangeFeed",
    "ChangeFeedError",
    "MemoryChangeFeed",
    "RedisChangeFeed",
]
