# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the fairness ledger: recording, dashboard, adjustments, reset.
"""

import threading
from datetime import date, timedelta

import pytest

from carpool_scheduler.core.errors import DuplicateRecordingError
from carpool_scheduler.models.domain import (
    AssignmentStatus,
    Family,
    WeeklyAssignment,
    WeeklyHistoryEntry,
)
from carpool_scheduler.repositories.fairness_repository import FairnessRepository
from carpool_scheduler.services.fairness_ledger import (
    FairnessLedger,
    equity_score,
    fair_shares,
    trend_direction,
)

GROUP = "g1"
WEEK = date(2025, 9, 1)
SLOTS = ["monday_morning", "tuesday_morning", "wednesday_morning",
         "thursday_morning", "friday_morning"]


def families(**overrides):
    result = {
        "fam-a": Family(id="fam-a", children_count=2),
        "fam-b": Family(id="fam-b", children_count=1),
        "fam-c": Family(id="fam-c", children_count=2),
    }
    for key, changes in overrides.items():
        fid = key.replace("_", "-")
        result[fid] = result[fid].model_copy(update=changes)
    return result


def week_of(drivers, week=WEEK, cancelled=()):
    """One assignment per weekday slot; drivers lists family ids (None = unfilled)."""
    return [
        WeeklyAssignment(
            group_id=GROUP,
            week_start_date=week,
            slot_id=slot_id,
            slot_date=week + timedelta(days=i),
            family_id=None if slot_id in cancelled else driver,
            status=(
                AssignmentStatus.CANCELLED if slot_id in cancelled
                else AssignmentStatus.SCHEDULED
            ),
        )
        for i, (slot_id, driver) in enumerate(zip(SLOTS, drivers))
    ]


@pytest.fixture
def repo():
    return FairnessRepository()


@pytest.fixture
def ledger(repo):
    return FairnessLedger(repo)


# ============================================
# record_week
# ============================================
class TestRecordWeek:
    def test_fair_share_by_children(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-a", "fam-b", "fam-b", "fam-a", "fam-c"]), families()
        )
        assert entries["fam-a"].fair_share == pytest.approx(2.0)
        assert entries["fam-b"].fair_share == pytest.approx(1.0)
        assert entries["fam-c"].fair_share == pytest.approx(2.0)
        assert entries["fam-a"].debt_change == pytest.approx(0.0)
        assert entries["fam-b"].debt_change == pytest.approx(1.0)
        assert entries["fam-c"].debt_change == pytest.approx(-1.0)

    def test_record_totals_updated(self, ledger):
        ledger.record_week(
            GROUP, WEEK, week_of(["fam-a", "fam-b", "fam-b", "fam-a", "fam-c"]), families()
        )
        record = ledger.get_record(GROUP, "fam-b")
        assert record.total_trips == 2
        assert record.total_weeks == 1
        assert record.fairness_debt == pytest.approx(1.0)
        assert len(record.weekly_history) == 1

    def test_debt_conservation(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-c", "fam-c", "fam-c", "fam-b", None]), families()
        )
        assert sum(e.fair_share for e in entries.values()) == pytest.approx(5.0)
        for entry in entries.values():
            assert entry.debt_change == pytest.approx(entry.assigned_trips - entry.fair_share)
        # an unfilled slot leaves the group one trip short
        assert sum(e.debt_change for e in entries.values()) == pytest.approx(-1.0)

    def test_unfilled_slot_stays_in_fair_share(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-a", None, "fam-b", "fam-a", "fam-c"]), families()
        )
        assert sum(e.fair_share for e in entries.values()) == pytest.approx(5.0)
        assert entries["fam-a"].fair_share == pytest.approx(2.0)
        assert entries["fam-b"].fair_share == pytest.approx(1.0)
        assert entries["fam-c"].debt_change == pytest.approx(-1.0)

    def test_zero_trip_family_still_recorded(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-a"] * 5), families()
        )
        assert entries["fam-b"].assigned_trips == 0
        assert entries["fam-b"].debt_change == pytest.approx(-1.0)
        assert ledger.get_record(GROUP, "fam-b").total_weeks == 1

    def test_inactive_family_not_charged(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-a"] * 5), families(fam_b={"active": False})
        )
        assert "fam-b" not in entries
        assert entries["fam-a"].fair_share == pytest.approx(2.5)

    def test_cancelled_slots_not_counted(self, ledger):
        entries = ledger.record_week(
            GROUP,
            WEEK,
            week_of(["fam-a", "fam-b", "fam-c", "fam-c", "fam-a"], cancelled={"monday_morning"}),
            families(),
        )
        assert sum(e.fair_share for e in entries.values()) == pytest.approx(4.0)

    def test_children_counts_frozen_per_entry(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        later = WEEK + timedelta(days=7)
        ledger.record_week(
            GROUP, later, week_of(["fam-a"] * 5, week=later),
            families(fam_a={"children_count": 3}),
        )
        history = ledger.get_record(GROUP, "fam-a").weekly_history
        assert history[0].children_count_at_recording == 2
        assert history[0].total_children_at_recording == 5
        assert history[1].children_count_at_recording == 3
        assert history[1].total_children_at_recording == 6

    def test_history_kept_in_week_order(self, ledger):
        later = WEEK + timedelta(days=7)
        ledger.record_week(GROUP, later, week_of(["fam-a"] * 5, week=later), families())
        ledger.record_week(GROUP, WEEK, week_of(["fam-b"] * 5), families())
        history = ledger.get_record(GROUP, "fam-a").weekly_history
        assert [e.week_start_date for e in history] == [WEEK, later]


class TestDuplicateRecording:
    def test_duplicate_rejected(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        with pytest.raises(DuplicateRecordingError):
            ledger.record_week(GROUP, WEEK, week_of(["fam-b"] * 5), families())

    def test_duplicate_leaves_ledger_untouched(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        before = ledger.snapshot(GROUP)
        with pytest.raises(DuplicateRecordingError):
            ledger.record_week(GROUP, WEEK, week_of(["fam-b"] * 5), families())
        assert ledger.snapshot(GROUP) == before

    def test_force_replaces_without_double_counting(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        ledger.record_week(GROUP, WEEK, week_of(["fam-b"] * 5), families(), force=True)
        a = ledger.get_record(GROUP, "fam-a")
        b = ledger.get_record(GROUP, "fam-b")
        assert a.total_weeks == 1
        assert a.total_trips == 0
        assert b.total_trips == 5
        assert a.fairness_debt == pytest.approx(-2.0)
        assert b.fairness_debt == pytest.approx(4.0)
        assert len(a.weekly_history) == 1

    def test_is_recorded(self, ledger):
        assert not ledger.is_recorded(GROUP, WEEK)
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        assert ledger.is_recorded(GROUP, WEEK)

    def test_concurrent_recordings_serialized(self, repo):
        workers = 8
        barrier = threading.Barrier(workers)
        outcomes = []

        def record():
            ledger = FairnessLedger(repo)
            barrier.wait()
            try:
                ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
                outcomes.append("recorded")
            except DuplicateRecordingError:
                outcomes.append("duplicate")

        threads = [threading.Thread(target=record) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert outcomes.count("recorded") == 1
        assert outcomes.count("duplicate") == workers - 1
        record = repo.get(GROUP, "fam-a")
        assert record.total_weeks == 1
        assert record.total_trips == 5
        assert len(record.weekly_history) == 1


class TestSnapshot:
    def test_snapshot_maps_debts(self, ledger):
        ledger.record_week(
            GROUP, WEEK, week_of(["fam-a", "fam-b", "fam-b", "fam-a", "fam-c"]), families()
        )
        debts = ledger.snapshot(GROUP)
        assert debts["fam-b"] == pytest.approx(1.0)
        assert debts["fam-c"] == pytest.approx(-1.0)

    def test_snapshot_excluding_week(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        debts = ledger.snapshot(GROUP, exclude_week=WEEK)
        assert all(v == pytest.approx(0.0) for v in debts.values())

    def test_empty_group(self, ledger):
        assert ledger.snapshot("nobody") == {}


# ============================================
# Vacation neutrality
# ============================================
class TestVacationNeutrality:
    def test_fully_excused_family_has_zero_debt_change(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-b", "fam-c", "fam-b", "fam-c", "fam-c"]),
            families(), excused_slots={"fam-a": 5},
        )
        assert entries["fam-a"].fair_share == pytest.approx(0.0)
        assert entries["fam-a"].debt_change == pytest.approx(0.0)
        assert entries["fam-a"].excused_slots == 5

    def test_conservation_holds_with_vacations(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-b", "fam-c", "fam-a", "fam-c", "fam-c"]),
            families(), excused_slots={"fam-a": 2},
        )
        assert sum(e.fair_share for e in entries.values()) == pytest.approx(5.0)
        assert sum(e.debt_change for e in entries.values()) == pytest.approx(0.0)

    def test_partial_vacation_reduces_share_proportionally(self, ledger):
        full = fair_shares(5, families(), {}, 5)
        partial = fair_shares(5, families(), {"fam-a": 2}, 5)
        assert partial["fam-a"] < full["fam-a"]
        assert sum(partial.values()) == pytest.approx(5.0)

    def test_non_driver_carries_no_share(self):
        shares = fair_shares(5, families(fam_c={"can_drive": False}), {}, 5)
        assert shares["fam-c"] == 0.0
        assert shares["fam-a"] == pytest.approx(5 * 2 / 3)

    def test_nobody_weighted_drivers_absorb_trips(self, ledger):
        entries = ledger.record_week(
            GROUP, WEEK, week_of(["fam-a"] * 5), {"fam-a": Family(id="fam-a")},
            excused_slots={"fam-a": 5},
        )
        assert entries["fam-a"].debt_change == pytest.approx(0.0)


# ============================================
# Adjustments and reset
# ============================================
class TestAdjustments:
    def test_manual_adjustment(self, ledger):
        record = ledger.apply_manual_adjustment(GROUP, "fam-a", -1.5, "Drove extra in May", "admin")
        assert record.fairness_debt == pytest.approx(-1.5)
        assert record.manual_adjustments[0].reason == "Drove extra in May"
        assert record.manual_adjustments[0].admin_id == "admin"
        assert record.weekly_history == []

    def test_manual_adjustment_accumulates(self, ledger):
        ledger.apply_manual_adjustment(GROUP, "fam-a", 1.0, "one")
        record = ledger.apply_manual_adjustment(GROUP, "fam-a", 0.5, "two")
        assert record.fairness_debt == pytest.approx(1.5)
        assert len(record.manual_adjustments) == 2

    def test_add_vacation_days(self, ledger):
        ledger.add_vacation_days(GROUP, "fam-a", 3)
        record = ledger.add_vacation_days(GROUP, "fam-a", 2)
        assert record.vacation_adjustments == 5


class TestReset:
    def _populate(self, ledger):
        ledger.record_week(GROUP, WEEK, week_of(["fam-a", "fam-b", "fam-b", "fam-a", "fam-c"]), families())
        ledger.apply_manual_adjustment(GROUP, "fam-c", 2.0, "correction")

    def test_reset_zeroes_everything(self, ledger):
        self._populate(ledger)
        records = ledger.reset(GROUP)
        assert {r.family_id for r in records} == {"fam-a", "fam-b", "fam-c"}
        for record in records:
            assert record.total_trips == 0
            assert record.total_weeks == 0
            assert record.fairness_debt == 0.0
            assert record.weekly_history == []
            assert record.manual_adjustments == []
            assert record.tracking_period_start is not None

    def test_reset_is_idempotent(self, ledger):
        self._populate(ledger)
        ledger.reset(GROUP)
        second = ledger.reset(GROUP)
        assert len(second) == 3
        assert all(r.fairness_debt == 0.0 for r in second)

    def test_week_can_be_recorded_again_after_reset(self, ledger):
        self._populate(ledger)
        ledger.reset(GROUP)
        ledger.record_week(GROUP, WEEK, week_of(["fam-a"] * 5), families())
        assert ledger.get_record(GROUP, "fam-a").total_trips == 5


# ============================================
# Dashboard and history
# ============================================
class TestDashboard:
    def test_new_families_score_100(self, ledger):
        dashboard = ledger.get_dashboard(GROUP, families())
        assert [f["equity_score"] for f in dashboard["families"]] == [100, 100, 100]
        assert dashboard["group_stats"]["equity_score"] == 100

    def test_group_score_uses_debt_range(self, ledger):
        ledger.record_week(
            GROUP, WEEK, week_of(["fam-a", "fam-b", "fam-b", "fam-a", "fam-c"]), families()
        )
        stats = ledger.get_dashboard(GROUP, families())["group_stats"]
        assert stats["debt_range"] == pytest.approx(2.0)
        assert stats["equity_score"] == 80
        assert stats["total_trips"] == 5
        assert stats["total_children"] == 5

    def test_recommendations(self, ledger):
        ledger.apply_manual_adjustment(GROUP, "fam-a", 3.0, "x")
        ledger.apply_manual_adjustment(GROUP, "fam-c", -2.0, "y")
        dashboard = ledger.get_dashboard(GROUP, families())
        recs = dashboard["recommendations"]
        assert [(r["family_id"], r["action"], r["rank"]) for r in recs] == [
            ("fam-a", "deprioritize", 1),
            ("fam-c", "prioritize", 2),
        ]
        assert any("High disparity" in m for m in dashboard["messages"])

    def test_balanced_message(self, ledger):
        dashboard = ledger.get_dashboard(GROUP, families())
        assert dashboard["recommendations"] == []
        assert "well-balanced" in dashboard["messages"][0]

    def test_equity_score_formula(self):
        from carpool_scheduler.models.domain import FairnessRecord

        record = FairnessRecord(
            family_id="f", group_id=GROUP, total_trips=4, total_weeks=4,
            children_count=2, fairness_debt=-2.0,
        )
        # avg 1 / expected 2 = 50, minus |debt| * 5 = 10
        assert equity_score(record) == 40

    def test_equity_score_floor(self):
        from carpool_scheduler.models.domain import FairnessRecord

        record = FairnessRecord(
            family_id="f", group_id=GROUP, total_trips=0, total_weeks=3,
            fairness_debt=-30.0,
        )
        assert equity_score(record) == 0


class TestFamilyHistory:
    def _entry(self, week, change):
        return WeeklyHistoryEntry(
            week_start_date=week, assigned_trips=1, fair_share=1.0,
            debt_change=change, children_count_at_recording=1,
            total_children_at_recording=3,
        )

    def test_trend_insufficient(self):
        assert trend_direction([self._entry(WEEK, 0.0)] * 2) == "insufficient_data"
        assert trend_direction([self._entry(WEEK, 0.0)] * 3) == "insufficient_data"

    def test_trend_improving(self):
        history = [self._entry(WEEK, 1.0)] * 3 + [self._entry(WEEK, -1.0)] * 3
        assert trend_direction(history) == "improving"

    def test_trend_worsening(self):
        history = [self._entry(WEEK, -1.0)] * 3 + [self._entry(WEEK, 1.0)] * 3
        assert trend_direction(history) == "worsening"

    def test_trend_stable(self):
        history = [self._entry(WEEK, 0.5)] * 6
        assert trend_direction(history) == "stable"

    def test_unknown_family_history_is_empty(self, ledger):
        history = ledger.get_family_history(GROUP, "fam-x")
        assert history["record"].total_weeks == 0
        assert history["trend"]["direction"] == "insufficient_data"
        assert history["equity_score"] == 100

    def test_recent_average(self, ledger):
        for i in range(3):
            week = WEEK + timedelta(days=7 * i)
            ledger.record_week(GROUP, week, week_of(["fam-b"] * 5, week=week), families())
        history = ledger.get_family_history(GROUP, "fam-b")
        assert history["trend"]["recent_average_trips"] == pytest.approx(5.0)
        assert history["trend"]["weeks_considered"] == 3
