"""Tests for serving group transitions and the ServingGroupStore."""

import pytest
from pydantic import ValidationError

from tableside.schemas import (
    AttendanceLog,
    CandidateGroup,
    CandidateItem,
    GroupStatus,
    ServingGroup,
    ServingItem,
)
from tableside.services import lifecycle
from tableside.services.lifecycle import GroupCompletedError, ItemNotFoundError
from tableside.services.store import (
    ChangeKind,
    GroupNotFoundError,
    ServingValidationError,
    StoreChange,
)


@pytest.fixture
def changes(store) -> list[StoreChange]:
    received: list[StoreChange] = []
    store.subscribe(received.append)
    return received


# ============================================================================
# Pure lifecycle handlers
# ============================================================================

class TestLifecycle:
    """Handlers return the same object when nothing changes."""

    def test_mark_arrived_first_write_wins(self, hotpot_group, clock):
        arrived = lifecycle.mark_arrived(hotpot_group, clock())
        assert arrived.start_time == "18:00"
        clock.advance(10)
        assert lifecycle.mark_arrived(arrived, clock()) is arrived

    def test_complete_twice_is_a_no_op(self, hotpot_group, clock):
        done = lifecycle.complete(hotpot_group, clock())
        assert done.status == GroupStatus.COMPLETED
        assert done.completion_time == clock()
        assert lifecycle.complete(done, clock()) is done

    def test_completed_group_rejects_edits(self, hotpot_group, clock):
        done = lifecycle.complete(hotpot_group, clock())
        with pytest.raises(GroupCompletedError):
            lifecycle.increment_served(done, "lau")

    def test_decrement_never_below_zero(self, hotpot_group):
        assert lifecycle.decrement_served(hotpot_group, "lau") is hotpot_group

    def test_increment_has_no_ceiling(self, hotpot_group):
        group = hotpot_group
        for _ in range(4):
            group = lifecycle.increment_served(group, "nem")
        assert group.items[1].served_quantity == 4
        assert lifecycle.progress(group) == pytest.approx(4 / 6)

    def test_serve_all_only_when_below_total(self, hotpot_group):
        served = lifecycle.serve_all(hotpot_group, "lau")
        assert served.items[0].served_quantity == 3
        assert lifecycle.serve_all(served, "lau") is served

    def test_unknown_item(self, hotpot_group):
        with pytest.raises(ItemNotFoundError):
            lifecycle.increment_served(hotpot_group, "missing")

    def test_update_item_revalidates(self, hotpot_group):
        with pytest.raises(ValidationError):
            lifecycle.update_item(hotpot_group, "lau", {"total_quantity": -1})

    def test_update_details_ignores_protected_fields(self, hotpot_group):
        updated = lifecycle.update_details(hotpot_group, {"location": "Sân vườn", "status": "COMPLETED"})
        assert updated.location == "Sân vườn"
        assert updated.status == GroupStatus.ACTIVE

    def test_recompute_distribution_sets_counts(self, hotpot_group):
        updated = lifecycle.recompute_distribution(hotpot_group, "2x10, 1x6")
        assert updated.table_count == 3
        assert updated.guest_count == 26
        assert updated.table_split == "2x10, 1x6"
        assert "bàn 10" in updated.items[0].note

    def test_recompute_with_unparsable_layout_keeps_counts(self, hotpot_group):
        updated = lifecycle.recompute_distribution(hotpot_group, "chưa rõ")
        assert updated.table_count == 3
        assert updated.guest_count == 12
        assert updated.items == hotpot_group.items

    def test_progress_without_items(self):
        assert lifecycle.progress(ServingGroup(name="Đoàn trống")) == 0.0


# ============================================================================
# ServingGroupStore
# ============================================================================

class TestServingGroupStore:
    """Actions on the state container and the changes they announce."""

    def test_create_builds_prep_list_and_date(self, store, hotpot_group, changes):
        group = store.create(hotpot_group)
        assert group.date == "2024-05-01"
        assert {s.name for s in group.prep_list} >= {"Nước mắm", "Bếp ga"}
        assert changes == [StoreChange(ChangeKind.UPSERT, group_id="grp1", group=group)]

    def test_newest_group_first(self, store, hotpot_group):
        store.create(hotpot_group)
        second = store.create(ServingGroup(name="Đoàn B"))
        assert [g.id for g in store.groups] == [second.id, "grp1"]

    def test_duplicate_id_rejected(self, store, hotpot_group):
        store.create(hotpot_group)
        with pytest.raises(ServingValidationError):
            store.create(hotpot_group)

    def test_no_op_emits_nothing(self, store, hotpot_group, changes):
        store.create(hotpot_group)
        store.decrement_served("grp1", "lau")
        assert len(changes) == 1

    def test_unknown_group(self, store):
        with pytest.raises(GroupNotFoundError):
            store.mark_arrived("missing")

    def test_mark_arrived_uses_clock(self, store, hotpot_group, clock):
        store.create(hotpot_group)
        clock.advance(35)
        assert store.mark_arrived("grp1").start_time == "18:35"

    def test_prep_list_survives_later_edits(self, store, hotpot_group):
        store.create(hotpot_group)
        store.toggle_prep_item("grp1", "Bếp ga")
        updated = store.update_group("grp1", name="Đoàn Sông Hàn pax Âu", table_count=5)
        bep_ga = next(s for s in updated.prep_list if s.name == "Bếp ga")
        assert bep_ga.quantity == 3
        assert bep_ga.is_completed

    def test_item_crud(self, store, hotpot_group):
        store.create(hotpot_group)
        group = store.add_item("grp1", ServingItem(id="com", name="Cơm trắng", total_quantity=3))
        assert [i.id for i in group.items] == ["lau", "nem", "com"]
        group = store.update_item("grp1", "com", served_quantity=2, note="Ít cơm")
        assert group.items[2].served_quantity == 2
        group = store.delete_item("grp1", "com")
        assert [i.id for i in group.items] == ["lau", "nem"]

    def test_delete_announces_the_removed_group(self, store, hotpot_group, changes):
        store.create(hotpot_group)
        store.complete("grp1")
        store.delete("grp1")
        assert changes[-1].kind == ChangeKind.DELETE
        assert changes[-1].group.status == GroupStatus.COMPLETED
        assert store.groups == []

    def test_dismiss_alert_once(self, store, changes):
        store.dismiss_alert("alert_serving_grp1")
        store.dismiss_alert("alert_serving_grp1")
        assert changes == [StoreChange(ChangeKind.DISMISS, alert_id="alert_serving_grp1")]
        assert store.dismissed_alert_ids == {"alert_serving_grp1"}

    def test_replace_all_announces_reload(self, store, hotpot_group, changes):
        log = AttendanceLog(id="log1", employee_id="e1", date="2024-05-01")
        store.replace_all([hotpot_group], [log], {"alert_late_x"})
        assert store.get("grp1") == hotpot_group
        assert store.attendance_logs == [log]
        assert changes == [StoreChange(ChangeKind.RELOAD)]

    def test_failing_listener_does_not_block_others(self, store, hotpot_group, changes):
        def broken(change):
            raise RuntimeError("boom")

        store.subscribe(broken)
        store.create(hotpot_group)
        assert len(changes) == 1

    def test_unsubscribe(self, store, hotpot_group):
        received = []
        unsubscribe = store.subscribe(received.append)
        unsubscribe()
        store.create(hotpot_group)
        assert received == []


class TestImportCandidates:
    """Vision candidates are validated before anything is created."""

    def test_import_distributes_against_layout(self, store):
        candidate = CandidateGroup(
            name="Đoàn Seoul pax Hàn",
            table_split="3 bàn 4",
            items=[CandidateItem(name="Lẩu kim chi", quantity=1, unit="Nồi")],
            confidence=0.8,
        )
        [group] = store.import_candidates([candidate])
        assert group.items[0].total_quantity == 3
        assert "Rau xà lách" in {s.name for s in group.prep_list}

    def test_blank_name_rejects_the_whole_batch(self, store):
        good = CandidateGroup(name="Đoàn A", items=[CandidateItem(name="Nem")])
        bad = CandidateGroup(name="  ", items=[])
        with pytest.raises(ServingValidationError):
            store.import_candidates([good, bad])
        assert store.groups == []

    def test_blank_item_name_rejected(self, store):
        with pytest.raises(ServingValidationError):
            store.import_candidates([CandidateGroup(name="Đoàn A", items=[CandidateItem(name="")])])
