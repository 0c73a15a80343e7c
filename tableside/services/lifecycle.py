"""
Serving Group Lifecycle

Pure transition handlers over a single ServingGroup. Every handler returns
a new group, or the very same object when the action changes nothing, so
callers can tell a no-op apart from a real mutation with an identity check.

    pending arrival ──mark_arrived──▶ active ──complete──▶ completed
      (start_time None)                (start_time set)     (terminal)
"""

from datetime import datetime
from typing import Any, Callable

from tableside.schemas import GroupStatus, ServingGroup, ServingItem
from tableside.services.allocation import parse_table_allocation, total_guests, total_tables
from tableside.services.distribution import distribute_quantities


class LifecycleError(Exception):
    """Base error for rejected lifecycle actions."""


class ItemNotFoundError(LifecycleError, LookupError):
    def __init__(self, group_id: str, item_id: str):
        super().__init__(f"Item {item_id} not found in group {group_id}")
        self.group_id = group_id
        self.item_id = item_id


class GroupCompletedError(LifecycleError):
    def __init__(self, group_id: str):
        super().__init__(f"Group {group_id} is completed and can no longer be edited")
        self.group_id = group_id


EDITABLE_GROUP_FIELDS = ("name", "location", "guest_count", "table_count", "table_split")


def _require_active(group: ServingGroup) -> None:
    if group.status == GroupStatus.COMPLETED:
        raise GroupCompletedError(group.id)


def _find_item(group: ServingGroup, item_id: str) -> ServingItem:
    for item in group.items:
        if item.id == item_id:
            return item
    raise ItemNotFoundError(group.id, item_id)


def _replace_item(
    group: ServingGroup,
    item_id: str,
    change: Callable[[ServingItem], ServingItem],
) -> ServingGroup:
    _require_active(group)
    current = _find_item(group, item_id)
    updated = change(current)
    if updated is current:
        return group
    items = [updated if i.id == item_id else i for i in group.items]
    return group.model_copy(update={"items": items})


# =============================================================================
# ARRIVAL & COMPLETION
# =============================================================================

def mark_arrived(group: ServingGroup, now: datetime) -> ServingGroup:
    """Stamp the arrival time. The first stamp wins; later calls are no-ops."""
    if group.start_time is not None:
        return group
    _require_active(group)
    return group.model_copy(update={"start_time": now.strftime("%H:%M")})


def complete(group: ServingGroup, now: datetime) -> ServingGroup:
    """Close the group. Completing a completed group changes nothing."""
    if group.status == GroupStatus.COMPLETED:
        return group
    return group.model_copy(update={
        "status": GroupStatus.COMPLETED,
        "completion_time": now,
    })


# =============================================================================
# SERVED COUNTERS
# =============================================================================

def increment_served(group: ServingGroup, item_id: str) -> ServingGroup:
    # No ceiling: runners may over-report and that is accepted.
    return _replace_item(
        group, item_id,
        lambda i: i.model_copy(update={"served_quantity": i.served_quantity + 1}),
    )


def decrement_served(group: ServingGroup, item_id: str) -> ServingGroup:
    def change(item: ServingItem) -> ServingItem:
        if item.served_quantity <= 0:
            return item
        return item.model_copy(update={"served_quantity": item.served_quantity - 1})

    return _replace_item(group, item_id, change)


def serve_all(group: ServingGroup, item_id: str) -> ServingGroup:
    def change(item: ServingItem) -> ServingItem:
        if item.served_quantity >= item.total_quantity:
            return item
        return item.model_copy(update={"served_quantity": item.total_quantity})

    return _replace_item(group, item_id, change)


# =============================================================================
# ITEM EDITS
# =============================================================================

def add_item(group: ServingGroup, item: ServingItem) -> ServingGroup:
    _require_active(group)
    return group.model_copy(update={"items": [*group.items, item]})


def update_item(group: ServingGroup, item_id: str, updates: dict[str, Any]) -> ServingGroup:
    """Apply a partial update, re-validating the merged item."""
    def change(item: ServingItem) -> ServingItem:
        merged = {**item.model_dump(), **updates, "id": item.id}
        return ServingItem.model_validate(merged)

    return _replace_item(group, item_id, change)


def delete_item(group: ServingGroup, item_id: str) -> ServingGroup:
    _require_active(group)
    _find_item(group, item_id)
    return group.model_copy(update={"items": [i for i in group.items if i.id != item_id]})


# =============================================================================
# GROUP EDITS
# =============================================================================

def update_details(group: ServingGroup, updates: dict[str, Any]) -> ServingGroup:
    """Edit descriptive fields. Prep list, status and arrival are untouched."""
    _require_active(group)
    changes = {k: v for k, v in updates.items() if k in EDITABLE_GROUP_FIELDS and v is not None}
    if not changes:
        return group
    return ServingGroup.model_validate({**group.model_dump(), **changes})


def toggle_prep_item(group: ServingGroup, name: str) -> ServingGroup:
    _require_active(group)
    if not any(s.name == name for s in group.prep_list):
        raise ItemNotFoundError(group.id, name)
    prep_list = [
        s.model_copy(update={"is_completed": not s.is_completed}) if s.name == name else s
        for s in group.prep_list
    ]
    return group.model_copy(update={"prep_list": prep_list})


def recompute_distribution(group: ServingGroup, table_split: str) -> ServingGroup:
    """
    Re-run quantity distribution against an edited layout.

    Table and guest counts follow the layout whenever it parses to at
    least one table; otherwise only the raw text is stored.
    """
    _require_active(group)
    layout = parse_table_allocation(table_split)
    update: dict[str, Any] = {
        "table_split": table_split,
        "items": distribute_quantities(group.items, layout),
    }
    if layout:
        update["table_count"] = total_tables(layout)
        update["guest_count"] = total_guests(layout)
    return group.model_copy(update=update)


def progress(group: ServingGroup) -> float:
    """Served share over all items; 0.0 for a group with nothing ordered."""
    total = sum(i.total_quantity for i in group.items)
    if total == 0:
        return 0.0
    served = sum(i.served_quantity for i in group.items)
    return served / total
