"""
Serving Group Store

Explicit state container for everything this client knows about the floor:
serving groups, today's attendance logs and the dismissed alert ids.

Every mutation goes through a named action method which applies a pure
lifecycle handler to one group, swaps the result into state and notifies
listeners with a StoreChange. The SyncReconciler listens and persists;
views listen to drop a deleted group. A full `replace_all` from a remote
reload is announced as RELOAD and is never persisted back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from tableside.schemas import (
    AttendanceLog,
    CandidateGroup,
    ServingGroup,
    ServingGroupCreate,
    ServingItem,
)
from tableside.services import lifecycle
from tableside.services.distribution import redistribute
from tableside.services.prep_list import build_prep_list

logger = logging.getLogger(__name__)


class GroupNotFoundError(LookupError):
    def __init__(self, group_id: str):
        super().__init__(f"Serving group {group_id} not found")
        self.group_id = group_id


class ServingValidationError(ValueError):
    """Input rejected locally before any persistence attempt."""


class ChangeKind(str, Enum):
    UPSERT = "upsert"
    DELETE = "delete"
    DISMISS = "dismiss"
    RELOAD = "reload"


@dataclass(frozen=True)
class StoreChange:
    kind: ChangeKind
    group_id: Optional[str] = None
    group: Optional[ServingGroup] = None
    alert_id: Optional[str] = None


StoreListener = Callable[[StoreChange], None]


def build_group(request: ServingGroupCreate) -> ServingGroup:
    """Turn a create request into a group, applying smart quantities if asked."""
    items = [
        ServingItem(
            name=i.name,
            total_quantity=i.total_quantity,
            unit=i.unit,
            note=i.note,
        )
        for i in request.items
    ]
    if request.apply_distribution and request.table_split:
        items = redistribute(items, request.table_split)
    return ServingGroup(
        name=request.name,
        location=request.location,
        guest_count=request.guest_count,
        table_count=request.table_count,
        table_split=request.table_split,
        date=request.date or "",
        items=items,
    )


def candidate_to_request(candidate: CandidateGroup) -> ServingGroupCreate:
    """Convert a staff-reviewed vision candidate; rejects blank names."""
    if not candidate.name.strip():
        raise ServingValidationError("Candidate group has no name")
    for item in candidate.items:
        if not item.name.strip():
            raise ServingValidationError(f"Group '{candidate.name}' has an item without a name")
    return ServingGroupCreate(
        name=candidate.name,
        location=candidate.location,
        guest_count=candidate.guest_count,
        table_count=candidate.table_count,
        table_split=candidate.table_split,
        items=[
            {"name": i.name, "total_quantity": i.quantity, "unit": i.unit, "note": i.note}
            for i in candidate.items
        ],
    )


class ServingGroupStore:
    """
    In-memory authoritative-for-this-client collection of serving groups.

    Example:
        >>> store = ServingGroupStore(clock=lambda: datetime(2024, 5, 1, 18, 0))
        >>> group = store.create(ServingGroup(name="Đoàn A", table_count=2))
        >>> store.mark_arrived(group.id).start_time
        '18:00'
    """

    def __init__(self, clock: Callable[[], datetime]):
        self._clock = clock
        self._groups: dict[str, ServingGroup] = {}
        self._logs: list[AttendanceLog] = []
        self._dismissed: set[str] = set()
        self._listeners: list[StoreListener] = []

    # =========================================================================
    # STATE ACCESS
    # =========================================================================

    @property
    def groups(self) -> list[ServingGroup]:
        return list(self._groups.values())

    @property
    def attendance_logs(self) -> list[AttendanceLog]:
        return list(self._logs)

    @property
    def dismissed_alert_ids(self) -> frozenset[str]:
        return frozenset(self._dismissed)

    def now(self) -> datetime:
        return self._clock()

    def get(self, group_id: str) -> ServingGroup:
        try:
            return self._groups[group_id]
        except KeyError:
            raise GroupNotFoundError(group_id) from None

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a change listener; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.exception(f"Store listener failed on {change.kind.value}: {e}")

    def _apply(self, group_id: str, handler: Callable[..., ServingGroup], *args: Any) -> ServingGroup:
        current = self.get(group_id)
        updated = handler(current, *args)
        if updated is current:
            logger.debug(f"{handler.__name__} on group {group_id}: no change")
            return current
        self._groups[group_id] = updated
        self._emit(StoreChange(ChangeKind.UPSERT, group_id=group_id, group=updated))
        return updated

    # =========================================================================
    # ACTIONS
    # =========================================================================

    def create(self, group: ServingGroup) -> ServingGroup:
        """Validate, stamp the date, build the prep list and store a new group."""
        group = ServingGroup.model_validate(group.model_dump())
        if group.id in self._groups:
            raise ServingValidationError(f"Serving group {group.id} already exists")

        updates: dict[str, Any] = {"prep_list": build_prep_list(group)}
        if not group.date:
            updates["date"] = self.now().date().isoformat()
        group = group.model_copy(update=updates)

        self._groups = {group.id: group, **self._groups}
        logger.info(f"Serving group created: {group.name} ({group.id}, {len(group.items)} items)")
        self._emit(StoreChange(ChangeKind.UPSERT, group_id=group.id, group=group))
        return group

    def import_candidates(self, candidates: Iterable[CandidateGroup]) -> list[ServingGroup]:
        """Validate every candidate first, then create them all."""
        requests = [candidate_to_request(c) for c in candidates]
        return [self.create(build_group(r)) for r in requests]

    def mark_arrived(self, group_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.mark_arrived, self.now())

    def complete(self, group_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.complete, self.now())

    def update_group(self, group_id: str, **fields: Any) -> ServingGroup:
        return self._apply(group_id, lifecycle.update_details, fields)

    def add_item(self, group_id: str, item: ServingItem) -> ServingGroup:
        return self._apply(group_id, lifecycle.add_item, item)

    def update_item(self, group_id: str, item_id: str, **fields: Any) -> ServingGroup:
        return self._apply(group_id, lifecycle.update_item, item_id, fields)

    def delete_item(self, group_id: str, item_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.delete_item, item_id)

    def increment_served(self, group_id: str, item_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.increment_served, item_id)

    def decrement_served(self, group_id: str, item_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.decrement_served, item_id)

    def serve_all(self, group_id: str, item_id: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.serve_all, item_id)

    def toggle_prep_item(self, group_id: str, name: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.toggle_prep_item, name)

    def recompute_distribution(self, group_id: str, table_split: str) -> ServingGroup:
        return self._apply(group_id, lifecycle.recompute_distribution, table_split)

    def delete(self, group_id: str) -> None:
        """Remove a group at any status."""
        group = self.get(group_id)
        del self._groups[group_id]
        logger.info(f"Serving group deleted: {group.name} ({group_id})")
        self._emit(StoreChange(ChangeKind.DELETE, group_id=group_id, group=group))

    def dismiss_alert(self, alert_id: str) -> None:
        if alert_id in self._dismissed:
            return
        self._dismissed.add(alert_id)
        self._emit(StoreChange(ChangeKind.DISMISS, alert_id=alert_id))

    def replace_all(
        self,
        groups: Iterable[ServingGroup],
        logs: Iterable[AttendanceLog],
        dismissed_alert_ids: Iterable[str],
    ) -> None:
        """Swap in a full snapshot from the shared store."""
        self._groups = {g.id: g for g in groups}
        self._logs = list(logs)
        self._dismissed = set(dismissed_alert_ids)
        self._emit(StoreChange(ChangeKind.RELOAD))
