"""
Sync Reconciler

Keeps the local ServingGroupStore and the shared remote store in step.

Outbound: every local change is written to the remote store in the
background. The local state is already updated (optimistic); a rejected
write is logged and left as is, the next reload brings the client back to
what the remote store holds.

Inbound: any change event on a watched collection triggers a full reload.
Reloads may overlap; only the most recently started one is applied. A
serving group whose start time goes from unset to set announces a guest
arrival on the NotificationBridge.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Coroutine, Optional

from tableside.schemas import ChangeEvent, ChangeType, ConnectionStatus, ServingGroup
from tableside.services.feed.base import BaseChangeFeed, ChangeFeedError
from tableside.services.notifications.bridge import NotificationBridge
from tableside.services.remote.base import (
    COLLECTIONS,
    DISMISSED_ALERTS,
    SERVING_GROUPS,
    BaseRemoteStore,
    RemoteStoreError,
)
from tableside.services.store import ChangeKind, ServingGroupStore, StoreChange

logger = logging.getLogger(__name__)


def is_arrival(event: ChangeEvent) -> bool:
    """True for a serving group update where the start time was just set."""
    if event.table != SERVING_GROUPS or event.event_type != ChangeType.UPDATE:
        return False
    if not event.old or not event.new:
        return False
    return not event.old.get("start_time") and bool(event.new.get("start_time"))


class SyncReconciler:
    """
    Bridges a ServingGroupStore to a BaseRemoteStore and its change feed.

    Example:
        >>> reconciler = SyncReconciler(store, remote, feed, bridge)
        >>> await reconciler.reload()
        >>> listener = asyncio.create_task(reconciler.listen())
    """

    def __init__(
        self,
        store: ServingGroupStore,
        remote: BaseRemoteStore,
        feed: Optional[BaseChangeFeed] = None,
        bridge: Optional[NotificationBridge] = None,
        retry_seconds: float = 5.0,
    ):
        self.store = store
        self.remote = remote
        self.feed = feed
        self.bridge = bridge
        self.retry_seconds = retry_seconds

        self.status = ConnectionStatus.DISCONNECTED
        self.last_reload_at: Optional[datetime] = None
        self.failed_writes = 0

        self._generation = 0
        self._pending: set[asyncio.Task] = set()
        self._unsubscribe = store.subscribe(self._on_store_change)

    # =========================================================================
    # OUTBOUND
    # =========================================================================

    def _on_store_change(self, change: StoreChange) -> None:
        if change.kind == ChangeKind.UPSERT and change.group is not None:
            self.persist_group(change.group)
        elif change.kind == ChangeKind.DELETE and change.group_id is not None:
            self.remove_group(change.group_id)
        elif change.kind == ChangeKind.DISMISS and change.alert_id is not None:
            self.persist_dismissal(change.alert_id)
        # RELOAD came from the remote store; nothing to write back.

    def persist_group(self, group: ServingGroup) -> None:
        self._spawn(
            self.remote.upsert(SERVING_GROUPS, group.model_dump(mode="json")),
            f"upsert group {group.id}",
        )

    def remove_group(self, group_id: str) -> None:
        self._spawn(self.remote.delete(SERVING_GROUPS, group_id), f"delete group {group_id}")

    def persist_dismissal(self, alert_id: str) -> None:
        row = {"id": alert_id, "timestamp": datetime.now(timezone.utc).isoformat()}
        self._spawn(self.remote.upsert(DISMISSED_ALERTS, row), f"dismiss alert {alert_id}")

    def _spawn(self, write: Coroutine[Any, Any, None], description: str) -> None:
        task = asyncio.create_task(write, name=description)
        self._pending.add(task)
        task.add_done_callback(self._write_done)

    def _write_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            logger.warning(f"Remote write cancelled: {task.get_name()}")
            return
        error = task.exception()
        if error is None:
            return
        self.failed_writes += 1
        if isinstance(error, RemoteStoreError):
            logger.error(f"Remote write failed ({task.get_name()}): {error}")
        else:
            logger.error(f"Unexpected error in remote write ({task.get_name()}): {error!r}")

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait for every in-flight write to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def reload(self) -> bool:
        """
        Replace local state with a full remote snapshot.

        Returns:
            True if this reload's result was applied, False if it failed or
            a newer reload started while it was in flight
        """
        self._generation += 1
        generation = self._generation

        try:
            snapshot = await self.remote.fetch_all()
        except RemoteStoreError as e:
            logger.error(f"Reload failed: {e}")
            return False

        if generation != self._generation:
            logger.debug(f"Discarding stale reload (generation {generation} < {self._generation})")
            return False

        self.store.replace_all(
            snapshot.serving_groups,
            snapshot.attendance_logs,
            snapshot.dismissed_alert_ids,
        )
        self.last_reload_at = datetime.now(timezone.utc)
        logger.info(
            f"Reloaded {len(snapshot.serving_groups)} groups, "
            f"{len(snapshot.attendance_logs)} attendance logs, "
            f"{len(snapshot.dismissed_alert_ids)} dismissed alerts"
        )
        return True

    async def handle_event(self, event: ChangeEvent) -> None:
        if event.table not in COLLECTIONS:
            return

        if is_arrival(event) and self.bridge is not None:
            group = _group_from_row(event.new)
            if group is not None:
                logger.info(f"Guest arrival: {group.name} at {group.start_time}")
                await self.bridge.notify_arrival(group)

        await self.reload()

    async def listen(self) -> None:
        """Consume the change feed until cancelled, reconnecting on failure."""
        if self.feed is None:
            logger.warning("No change feed configured; relying on manual reloads")
            return

        while True:
            self.status = ConnectionStatus.CONNECTING
            try:
                async with self.feed.subscribe() as events:
                    self.status = ConnectionStatus.CONNECTED
                    logger.info(f"Subscribed to {self.feed.provider_name} change feed")
                    # Catch up on anything missed while disconnected.
                    await self.reload()
                    async for event in events:
                        await self.handle_event(event)
            except ChangeFeedError as e:
                logger.error(f"Change feed dropped: {e}")
            except Exception as e:
                logger.exception(f"Realtime listener failed: {e}")
            finally:
                self.status = ConnectionStatus.DISCONNECTED

            logger.info(f"Resubscribing in {self.retry_seconds:.0f}s")
            await asyncio.sleep(self.retry_seconds)

    def close(self) -> None:
        self._unsubscribe()


def _group_from_row(row: Optional[dict[str, Any]]) -> Optional[ServingGroup]:
    if row is None:
        return None
    try:
        return ServingGroup.model_validate(row)
    except ValueError as e:
        logger.warning(f"Arrival event carries an invalid group row: {e}")
        return None
