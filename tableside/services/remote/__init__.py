"""
Remote Store Factory

Returns the in-memory or SQL shared store based on ENV_MODE. The store is
handed the change feed it publishes write events on.
"""

import logging

from tableside.core.config import get_settings
from tableside.database import build_engine
from tableside.services.feed.base import BaseChangeFeed
from tableside.services.remote.base import (
    ATTENDANCE_LOGS,
    DISMISSED_ALERTS,
    SERVING_GROUPS,
    BaseRemoteStore,
    RemoteSnapshot,
    RemoteStoreError,
)
from tableside.services.remote.memory import MemoryRemoteStore
from tableside.services.remote.sql import SqlRemoteStore

logger = logging.getLogger(__name__)


def create_remote_store(feed: BaseChangeFeed) -> BaseRemoteStore:
    """Build the configured remote store, publishing changes on `feed`."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Remote Store: Using MemoryRemoteStore (development mode)")
        return MemoryRemoteStore(
            feed=feed,
            failure_rate=settings.store_failure_rate,
            min_latency=0.05,
            max_latency=0.2,
        )

    logger.info(f"Remote Store: Using SqlRemoteStore ({settings.env_mode.value} mode)")
    return SqlRemoteStore(build_engine(), feed=feed)


__all__ = [
    "create_remote_store",
    "BaseRemoteStore",
    "RemoteSnapshot",
    "RemoteStoreError",
    "MemoryRemoteStore",
    "SqlRemoteStore",
    "SERVING_GROUPS",
    "ATTENDANCE_LOGS",
    "DISMISSED_ALERTS",
]
