"""
Table Allocation Parser

Turns the free-text table layout staff type next to a group into a list of
TableGroup entries. Supported forms, mixable within one string:

    "2x10, 1x6"        two tables of 10, one of 6
    "2 bàn 10 + 1 mâm 6"
    "3*8; 1.4"
    "10, 10, 6"        bare sizes, one table each

Segments that match nothing are dropped without error; staff see the
resulting table count and correct the text themselves.
"""

import re
from typing import Iterable

from tableside.schemas import TableGroup

SEGMENT_SEPARATORS = re.compile(r"[,+;]")
COUNT_SIZE_PATTERN = re.compile(r"(\d+)\s*(?:[x*×.]|bàn|mâm)\s*(\d+)")
BARE_SIZE_PATTERN = re.compile(r"^(\d+)$")

# A bare number this large is more likely a guest total than one table.
MAX_BARE_TABLE_SIZE = 50


def _parse_segment(segment: str) -> TableGroup | None:
    match = COUNT_SIZE_PATTERN.search(segment)
    if match:
        count, size = int(match.group(1)), int(match.group(2))
        if count > 0 and size > 0:
            return TableGroup(count=count, size=size)
        return None

    match = BARE_SIZE_PATTERN.match(segment)
    if match:
        size = int(match.group(1))
        if 0 < size < MAX_BARE_TABLE_SIZE:
            return TableGroup(count=1, size=size)

    return None


def parse_table_allocation(text: str | None) -> list[TableGroup]:
    """
    Parse a table layout description.

    Args:
        text: Raw layout text, e.g. "2x10, 1x6" or "3 bàn 6"

    Returns:
        TableGroup entries in the order they appear; empty when nothing parses

    Example:
        >>> parse_table_allocation("2x10, 1x6")
        [TableGroup(count=2, size=10), TableGroup(count=1, size=6)]
    """
    if not text:
        return []

    groups: list[TableGroup] = []
    for raw in SEGMENT_SEPARATORS.split(text.lower()):
        segment = raw.strip()
        if not segment:
            continue
        group = _parse_segment(segment)
        if group is not None:
            groups.append(group)
    return groups


def total_tables(layout: Iterable[TableGroup]) -> int:
    return sum(g.count for g in layout)


def total_guests(layout: Iterable[TableGroup]) -> int:
    return sum(g.count * g.size for g in layout)
