"""Tests for the condiment and equipment prep list."""

from tableside.schemas import ServingGroup, ServingItem
from tableside.services.prep_list import (
    build_prep_list,
    effective_table_count,
    guest_type,
    standard_bowls,
)


def group(name: str, tables: int, guests: int, *dishes: str, quantity: int = 1) -> ServingGroup:
    return ServingGroup(
        name=name,
        table_count=tables,
        guest_count=guests,
        items=[ServingItem(name=d, total_quantity=quantity) for d in dishes],
    )


def prep_by_name(g: ServingGroup) -> dict:
    return {s.name: s for s in build_prep_list(g)}


class TestHelpers:
    def test_guest_type_after_pax(self):
        assert guest_type("Đoàn Seoul pax Hàn (tour 3)") == "hàn"
        assert guest_type("Đoàn lẻ") == ""

    def test_table_count_falls_back_to_hot_pots(self):
        g = group("Đoàn A", 0, 20, "Lẩu thái", quantity=3)
        assert effective_table_count(g) == 3

    def test_table_count_falls_back_to_six_per_table(self):
        assert effective_table_count(group("Đoàn A", 0, 13, "Nem rán")) == 3

    def test_two_bowls_when_more_than_four_per_table(self):
        assert standard_bowls(3, 5) == 6
        assert standard_bowls(3, 4) == 3


class TestBuildPrepList:
    """Rules keyed on guest type and dishes."""

    def test_vietnamese_guests(self):
        prep = prep_by_name(group("Đoàn A pax Việt", 2, 12, "Nem rán"))
        assert prep["Nước mắm"].quantity == 4
        assert prep["Xì dầu"].quantity == 4
        assert prep["Nước chấm nem"].quantity == 4
        assert prep["Ớt tươi"].quantity == 4

    def test_western_guests(self):
        prep = prep_by_name(group("Đoàn B pax Âu", 3, 12, "Nem rán"))
        assert prep["Xì dầu"].quantity == 3
        assert prep["Nước chấm nem"].quantity == 3
        assert prep["Muối tiêu"].quantity == 3
        assert "Ớt tươi" not in prep
        assert "Nước mắm" not in prep

    def test_korean_guests_with_pork_belly(self):
        prep = prep_by_name(group("Đoàn C pax Hàn", 2, 8, "Ba chỉ quay giòn"))
        assert prep["Sốt ba chỉ quay"].quantity == 2
        assert prep["Rau xà lách"].quantity == 2
        assert prep["Rau xà lách"].unit == "Đĩa"

    def test_salad_dish_quadruples_soy_sauce(self):
        prep = prep_by_name(group("Đoàn D", 2, 8, "Gỏi cá hồi"))
        assert prep["Xì dầu"].quantity == 8
        assert prep["Nước chấm gỏi"].quantity == 2

    def test_hot_pot_needs_one_burner_per_table(self):
        prep = prep_by_name(group("Đoàn E", 4, 24, "Lẩu riêu cua"))
        assert prep["Bếp ga"].quantity == 4
        assert prep["Bếp ga"].unit == "Chiếc"

    def test_grilled_chicken_styles(self):
        assert "Chẩm chéo" in prep_by_name(group("Đoàn F", 2, 8, "Gà nướng"))
        assert "Chẩm chéo" not in prep_by_name(group("Đoàn F", 2, 8, "Gà nướng mật ong"))

    def test_fries_get_chilli_sauce(self):
        assert "Tương ớt" in prep_by_name(group("Đoàn G", 2, 8, "Khoai tây chiên"))

    def test_soy_sauce_is_always_prepared(self):
        assert list(prep_by_name(group("Đoàn H", 1, 2))) == ["Xì dầu", "Ớt tươi"]

    def test_entries_start_unticked(self):
        assert not any(s.is_completed for s in build_prep_list(group("Đoàn A pax Việt", 2, 8, "Nem")))
