"""
Prep List Builder

Works out the condiments and equipment the kitchen sets out for a group,
from its table count, its dishes and the guest nationality written in the
group name (e.g. "Đoàn ABC pax Âu"). The list is built once when the group
is created; after that staff tick entries off independently.
"""

import math
import re

from tableside.schemas import SauceItem, ServingGroup

PAX_PATTERN = re.compile(r"pax\s+([^\n\r(]+)")
WESTERN_PATTERN = re.compile(r"âu|eu|euro")
KOREAN_PATTERN = re.compile(r"hàn|han|korea|kor")
VIETNAMESE_PATTERN = re.compile(r"việt|viet|vn")

HOT_POT_KEYWORD = "lẩu"
DEFAULT_GUESTS_PER_TABLE = 6


def guest_type(group_name: str) -> str:
    """Text after "pax" in the group name, lower-cased; empty if absent."""
    match = PAX_PATTERN.search(group_name.lower())
    return match.group(1).strip() if match else ""


def effective_table_count(group: ServingGroup) -> int:
    if group.table_count:
        return group.table_count
    for item in group.items:
        if HOT_POT_KEYWORD in item.name.lower():
            return item.total_quantity
    return math.ceil(group.guest_count / DEFAULT_GUESTS_PER_TABLE)


def standard_bowls(tables: int, guests_per_table: float) -> int:
    """One bowl per table, two when more than four guests share it."""
    return (2 if guests_per_table > 4 else 1) * tables


def build_prep_list(group: ServingGroup) -> list[SauceItem]:
    names = [item.name.lower() for item in group.items]

    def has(*keywords: str) -> bool:
        return any(k in n for n in names for k in keywords)

    pax = guest_type(group.name)
    western = bool(WESTERN_PATTERN.search(pax))
    korean = bool(KOREAN_PATTERN.search(pax))
    vietnamese = bool(VIETNAMESE_PATTERN.search(pax))

    tables = effective_table_count(group)
    bowls = standard_bowls(tables, group.guest_count / (tables or 1))
    prep: list[SauceItem] = []

    if vietnamese:
        prep.append(SauceItem(name="Nước mắm", quantity=bowls, note="Khách Việt"))

    soy, soy_note = bowls, "Tiêu chuẩn"
    if western:
        soy, soy_note = tables, "Khách Âu (1 bát/bàn)"
    elif has("gỏi"):
        soy, soy_note = 4 * tables, "Món Gỏi (4 bát/bàn)"
    prep.append(SauceItem(name="Xì dầu", quantity=soy, note=soy_note))

    if has("nem"):
        if western:
            prep.append(SauceItem(name="Nước chấm nem", quantity=tables, note="Khách Âu (1 bát/bàn)"))
        else:
            prep.append(SauceItem(name="Nước chấm nem", quantity=bowls, note="Có món Nem"))

    if any(("cá hồi" in n or "cá tầm" in n) and "nướng" in n for n in names):
        prep.append(SauceItem(name="Nước chấm cá", quantity=bowls, note="Cá nướng"))

    if not western:
        prep.append(SauceItem(name="Ớt tươi", quantity=soy))

    if has("cơm lam", "rau luộc", "củ luộc"):
        prep.append(SauceItem(name="Muối vừng", quantity=bowls))

    if any("gà nướng" in n and "mật ong" not in n and "đồng quê" not in n for n in names):
        prep.append(SauceItem(name="Chẩm chéo", quantity=bowls, note="Gà nướng"))

    if has("lợn hấp"):
        prep.append(SauceItem(name="Tương bần", quantity=bowls))

    if has("gỏi cá hồi"):
        prep.append(SauceItem(name="Nước chấm gỏi", quantity=tables, note="1 bát/bàn"))

    if has(HOT_POT_KEYWORD):
        prep.append(SauceItem(name="Bếp ga", quantity=tables, unit="Chiếc"))

    if western:
        prep.append(SauceItem(name="Muối tiêu", quantity=tables, unit="Phần", note="Khách Âu"))

    if any(("khoai lang" in n or "khoai tây" in n) and "chiên" in n for n in names):
        prep.append(SauceItem(name="Tương ớt", quantity=bowls, note="Khoai chiên"))

    pork_belly = any(
        ("ba chỉ" in n and "quay" in n) or "heo quay" in n or "lợn quay" in n
        for n in names
    )
    if korean and pork_belly:
        prep.append(SauceItem(name="Sốt ba chỉ quay", quantity=bowls, note="Khách Hàn - Ba chỉ"))

    if korean:
        prep.append(SauceItem(name="Rau xà lách", quantity=tables, unit="Đĩa", note="Khách Hàn"))

    return prep
