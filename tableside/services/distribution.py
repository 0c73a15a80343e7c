"""
Quantity Distribution Engine

Given a parsed table layout, decides for every ordered dish whether it is
served per table (shared) or per guest, corrects the ordered quantity to
match the layout and writes a distribution note the runners can follow.

The function is pure and idempotent: running it again on its own output
with the same layout returns the same items. Staff can therefore re-run it
whenever they edit the layout text.
"""

from typing import Iterable

from tableside.schemas import ServingItem, TableGroup
from tableside.services.allocation import (
    parse_table_allocation,
    total_guests,
    total_tables,
)

PER_HEAD_NOTE = "Theo đầu người"
NOTE_SEPARATOR = " • "

# Always one portion per guest, whatever unit was written on the slip.
PER_GUEST_NAME_KEYWORDS = ("súp", "soup", "cháo")

# Always shared by the table, whatever unit was written on the slip.
SHARED_NAME_KEYWORDS = ("cơm", "canh", "rice", "broth")

PER_GUEST_UNITS = (
    "bát", "chén", "suất", "cốc", "ly", "pax", "người", "khách",
    "bowl", "cup", "glass", "set", "per head",
)

# Accepted ratio of quantity to guests for a per-guest dish.
PER_GUEST_TOLERANCE = (0.9, 1.1)


def is_forced_per_guest(item: ServingItem) -> bool:
    name = item.name.lower()
    return any(k in name for k in PER_GUEST_NAME_KEYWORDS)


def is_shared(item: ServingItem) -> bool:
    """Whether a dish (not forced per guest) is portioned per table."""
    name = item.name.lower()
    if any(k in name for k in SHARED_NAME_KEYWORDS):
        return True
    unit = item.unit.lower()
    return not any(u in unit for u in PER_GUEST_UNITS)


def scale_shared_quantity(quantity: int, tables: int) -> int:
    """
    Bring a shared dish's quantity in line with the table count.

    Too few becomes one per table. Exactly one extra is treated as an
    over-detected table and trimmed. Any larger surplus is an intentional
    extra order and is kept.
    """
    if quantity < tables:
        return tables
    if quantity - tables == 1:
        return tables
    return quantity


def build_table_note(quantity: int, unit: str, layout: list[TableGroup]) -> str:
    """Describe how `quantity` units are split across the table-size buckets."""
    tables = total_tables(layout)
    per_table = quantity // tables
    remainder = quantity % tables

    if per_table == 0:
        return f"Chia {quantity} {unit} cho {tables} bàn"

    parts = [f"{g.count * per_table} {unit} bàn {g.size}" for g in layout]
    note = NOTE_SEPARATOR.join(parts)
    if remainder:
        note += f"{NOTE_SEPARATOR}Dư {remainder}"
    return note


def distribute_quantities(
    items: Iterable[ServingItem],
    layout: list[TableGroup],
) -> list[ServingItem]:
    """
    Apply smart quantities and notes to a group's items.

    Args:
        items: Current items of the group
        layout: Parsed table layout

    Returns:
        A new list of items; the input items are not modified
    """
    items = list(items)
    tables = total_tables(layout)
    guests = total_guests(layout)

    if tables == 0:
        return items

    distributed = []
    for item in items:
        if is_forced_per_guest(item):
            distributed.append(
                item.model_copy(update={"total_quantity": guests, "note": PER_HEAD_NOTE})
            )
            continue

        if is_shared(item):
            quantity = scale_shared_quantity(item.total_quantity, tables)
            distributed.append(item.model_copy(update={
                "total_quantity": quantity,
                "note": build_table_note(quantity, item.unit, layout),
            }))
            continue

        low, high = PER_GUEST_TOLERANCE
        ratio = item.total_quantity / guests
        if low <= ratio <= high:
            distributed.append(
                item.model_copy(update={"total_quantity": guests, "note": PER_HEAD_NOTE})
            )
        else:
            distributed.append(item.model_copy())

    return distributed


def redistribute(items: Iterable[ServingItem], table_split: str) -> list[ServingItem]:
    """Parse `table_split` and distribute `items` against it."""
    return distribute_quantities(items, parse_table_allocation(table_split))
