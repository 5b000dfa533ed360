# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the slot assignment engine (pure functions, no HTTP).
"""

from datetime import date

import pytest

from carpool_scheduler.core.errors import ValidationError
from carpool_scheduler.models.domain import (
    AssignmentMethod,
    AssignmentStatus,
    ConflictReason,
    DayOfWeek,
    Family,
    Group,
    HolidayRecord,
    PreferenceLevel,
    TimeSlot,
    VacationRecord,
    WeeklyPreferenceSet,
)
from carpool_scheduler.services.assignment import (
    assign_week,
    break_tie,
    check_preference_limits,
    normalize_preferences,
)

WEEK = date(2025, 9, 1)  # a Monday
P = PreferenceLevel.PREFERABLE
L = PreferenceLevel.LESS_PREFERABLE
U = PreferenceLevel.UNAVAILABLE


def weekday_template():
    return [
        TimeSlot(day_of_week=day)
        for day in (
            DayOfWeek.MONDAY,
            DayOfWeek.TUESDAY,
            DayOfWeek.WEDNESDAY,
            DayOfWeek.THURSDAY,
            DayOfWeek.FRIDAY,
        )
    ]


def make_group(member_ids=("fam-a", "fam-b", "fam-c"), template=None):
    return Group(
        id="g1",
        name="Test group",
        template=template if template is not None else weekday_template(),
        member_ids=list(member_ids),
    )


def make_families(**overrides):
    families = {
        "fam-a": Family(id="fam-a", children_count=2),
        "fam-b": Family(id="fam-b", children_count=1),
        "fam-c": Family(id="fam-c", children_count=2),
    }
    for family_id, changes in overrides.items():
        families[family_id.replace("_", "-")] = families[family_id.replace("_", "-")].model_copy(
            update=changes
        )
    return families


def prefs(family_id, **levels):
    return WeeklyPreferenceSet(
        family_id=family_id,
        group_id="g1",
        week_start_date=WEEK,
        preferences={f"{day}_morning": level for day, level in levels.items()},
    )


def example_preferences():
    return [
        prefs("fam-a", monday=P, thursday=P, tuesday=U),
        prefs("fam-b", wednesday=P),
        prefs("fam-c", friday=P),
    ]


# ============================================
# Worked example
# ============================================
class TestThreeFamilyExample:
    def test_expected_assignment(self):
        plan = assign_week(make_group(), WEEK, example_preferences(), {}, make_families())
        assert plan.assignment_map() == {
            "monday_morning": "fam-a",
            "tuesday_morning": "fam-b",
            "wednesday_morning": "fam-b",
            "thursday_morning": "fam-a",
            "friday_morning": "fam-c",
        }
        assert plan.conflicts == []

    def test_methods_follow_tiers(self):
        plan = assign_week(make_group(), WEEK, example_preferences(), {}, make_families())
        methods = {a.slot_id: a.method for a in plan.assignments}
        assert methods["monday_morning"] == AssignmentMethod.PREFERABLE
        assert methods["tuesday_morning"] == AssignmentMethod.NEUTRAL

    def test_tuesday_tie_broken_by_family_id(self):
        plan = assign_week(make_group(), WEEK, example_preferences(), {}, make_families())
        tuesday = next(a for a in plan.assignments if a.slot_id == "tuesday_morning")
        assert "fam-b" in tuesday.rationale
        assert "lowest family id" in tuesday.rationale

    def test_tuesday_goes_to_lower_debt(self):
        debts = {"fam-a": 0.0, "fam-b": 1.0, "fam-c": -0.5}
        plan = assign_week(make_group(), WEEK, example_preferences(), debts, make_families())
        assert plan.assignment_map()["tuesday_morning"] == "fam-c"

    def test_slot_dates(self):
        plan = assign_week(make_group(), WEEK, example_preferences(), {}, make_families())
        dates = [a.slot_date for a in plan.assignments]
        assert dates == [date(2025, 9, d) for d in range(1, 6)]


# ============================================
# Invariants
# ============================================
class TestInvariants:
    def test_one_assignment_per_slot(self):
        plan = assign_week(make_group(), WEEK, [], {}, make_families())
        assert [a.slot_id for a in plan.assignments] == [
            s.id for s in weekday_template()
        ]

    def test_deterministic(self):
        debts = {"fam-a": 0.3, "fam-b": -0.2, "fam-c": 0.3}
        first = assign_week(make_group(), WEEK, example_preferences(), debts, make_families())
        second = assign_week(make_group(), WEEK, example_preferences(), debts, make_families())
        assert first.model_dump() == second.model_dump()

    def test_member_order_does_not_matter(self):
        forward = assign_week(make_group(), WEEK, [], {}, make_families())
        backward = assign_week(
            make_group(member_ids=("fam-c", "fam-b", "fam-a")), WEEK, [], {}, make_families()
        )
        assert forward.assignment_map() == backward.assignment_map()

    def test_preferable_beats_lower_debt(self):
        debts = {"fam-a": 5.0, "fam-b": -5.0, "fam-c": -5.0}
        plan = assign_week(
            make_group(), WEEK, [prefs("fam-a", monday=P)], debts, make_families()
        )
        assert plan.assignment_map()["monday_morning"] == "fam-a"

    def test_less_preferable_beats_neutral(self):
        debts = {"fam-a": 0.0, "fam-b": -3.0, "fam-c": -3.0}
        plan = assign_week(
            make_group(), WEEK, [prefs("fam-a", monday=L)], debts, make_families()
        )
        monday = plan.assignments[0]
        assert monday.family_id == "fam-a"
        assert monday.method == AssignmentMethod.LESS_PREFERABLE

    def test_unavailable_never_assigned(self):
        preferences = [prefs("fam-a", monday=U), prefs("fam-b", monday=U)]
        plan = assign_week(make_group(), WEEK, preferences, {}, make_families())
        assert plan.assignment_map()["monday_morning"] == "fam-c"

    def test_winner_has_lowest_debt_in_tier(self):
        debts = {"fam-a": 0.5, "fam-b": 0.2, "fam-c": 0.9}
        plan = assign_week(make_group(), WEEK, [], debts, make_families())
        for assignment in plan.assignments:
            assert assignment.family_id == "fam-b"

    def test_static_debts_within_a_week(self):
        # No intra-week rebalancing: the lowest-debt neutral family takes all
        plan = assign_week(make_group(), WEEK, [], {"fam-c": -1.0}, make_families())
        assert set(plan.assignment_map().values()) == {"fam-c"}


# ============================================
# Exclusions and conflicts
# ============================================
class TestExclusions:
    def test_inactive_family_excluded(self):
        families = make_families(fam_b={"active": False})
        plan = assign_week(make_group(), WEEK, [], {"fam-b": -9.0}, families)
        assert "fam-b" not in plan.assignment_map().values()

    def test_non_driver_excluded(self):
        families = make_families(fam_a={"can_drive": False})
        plan = assign_week(make_group(), WEEK, [], {"fam-a": -9.0}, families)
        assert "fam-a" not in plan.assignment_map().values()

    def test_vacation_excludes_only_covered_days(self):
        vacation = VacationRecord(
            family_id="fam-a", group_id="g1",
            start_date=date(2025, 9, 1), end_date=date(2025, 9, 2),
        )
        plan = assign_week(
            make_group(), WEEK, [], {"fam-a": -9.0}, make_families(), vacations=[vacation]
        )
        assignments = plan.assignment_map()
        assert assignments["monday_morning"] != "fam-a"
        assert assignments["tuesday_morning"] != "fam-a"
        assert assignments["wednesday_morning"] == "fam-a"

    def test_vacation_from_other_group_ignored(self):
        vacation = VacationRecord(
            family_id="fam-a", group_id="other",
            start_date=date(2025, 9, 1), end_date=date(2025, 9, 5),
        )
        plan = assign_week(
            make_group(), WEEK, [], {"fam-a": -9.0}, make_families(), vacations=[vacation]
        )
        assert plan.assignment_map()["monday_morning"] == "fam-a"

    def test_all_unavailable_conflict(self):
        preferences = [prefs(f, monday=U) for f in ("fam-a", "fam-b", "fam-c")]
        plan = assign_week(make_group(), WEEK, preferences, {}, make_families())
        monday = plan.assignments[0]
        assert monday.family_id is None
        assert monday.method == AssignmentMethod.UNFILLED
        assert len(plan.conflicts) == 1
        conflict = plan.conflicts[0]
        assert conflict.slot_id == "monday_morning"
        assert conflict.reason == ConflictReason.ALL_UNAVAILABLE
        assert conflict.excluded == {
            "fam-a": "unavailable", "fam-b": "unavailable", "fam-c": "unavailable",
        }

    def test_all_on_vacation_conflict(self):
        vacations = [
            VacationRecord(
                family_id=f, group_id="g1",
                start_date=date(2025, 9, 5), end_date=date(2025, 9, 5),
            )
            for f in ("fam-a", "fam-b", "fam-c")
        ]
        plan = assign_week(make_group(), WEEK, [], {}, make_families(), vacations=vacations)
        assert [c.slot_id for c in plan.conflicts] == ["friday_morning"]
        assert plan.conflicts[0].reason == ConflictReason.ALL_ON_VACATION

    def test_mixed_exclusions_conflict(self):
        vacation = VacationRecord(
            family_id="fam-a", group_id="g1",
            start_date=date(2025, 9, 1), end_date=date(2025, 9, 1),
        )
        preferences = [prefs("fam-b", monday=U), prefs("fam-c", monday=U)]
        plan = assign_week(
            make_group(), WEEK, preferences, {}, make_families(), vacations=[vacation]
        )
        assert plan.conflicts[0].reason == ConflictReason.NO_ELIGIBLE_DRIVERS

    def test_empty_group_conflicts_every_slot(self):
        plan = assign_week(make_group(member_ids=()), WEEK, [], {}, make_families())
        assert len(plan.conflicts) == 5
        assert {c.reason for c in plan.conflicts} == {ConflictReason.EMPTY_GROUP}
        assert plan.filled == []

    def test_unknown_member_treated_as_empty(self):
        plan = assign_week(make_group(member_ids=("ghost",)), WEEK, [], {}, {})
        assert plan.conflicts[0].reason == ConflictReason.EMPTY_GROUP
        assert plan.conflicts[0].excluded == {"ghost": "unknown_family"}


# ============================================
# Holidays
# ============================================
class TestHolidays:
    def test_holiday_slots_cancelled(self):
        holiday = HolidayRecord(
            group_id="g1", name="Labor Day",
            start_date=date(2025, 9, 1), end_date=date(2025, 9, 1),
        )
        plan = assign_week(make_group(), WEEK, [], {}, make_families(), holidays=[holiday])
        monday = plan.assignments[0]
        assert monday.status == AssignmentStatus.CANCELLED
        assert monday.cancellation_reason == "holiday"
        assert monday.family_id is None
        assert plan.holiday_slot_ids == ["monday_morning"]
        assert plan.conflicts == []
        assert len(plan.filled) == 4

    def test_holiday_without_auto_adjust_ignored(self):
        holiday = HolidayRecord(
            group_id="g1", start_date=date(2025, 9, 1), end_date=date(2025, 9, 5),
            auto_adjust_scheduling=False,
        )
        plan = assign_week(make_group(), WEEK, [], {}, make_families(), holidays=[holiday])
        assert len(plan.filled) == 5


# ============================================
# Tie-break helper
# ============================================
class TestBreakTie:
    def test_lowest_debt_wins(self):
        winner, _ = break_tie(["b", "a", "c"], {"a": 1.0, "b": -1.0, "c": 0.0}, 1e-6)
        assert winner == "b"

    def test_id_order_within_epsilon(self):
        winner, rationale = break_tie(["c", "b"], {"b": 0.1000001, "c": 0.1}, 1e-3)
        assert winner == "b"
        assert "tie" in rationale

    def test_outside_epsilon_debt_decides(self):
        winner, _ = break_tie(["c", "b"], {"b": 0.2, "c": 0.1}, 1e-3)
        assert winner == "c"

    def test_missing_debt_counts_as_zero(self):
        winner, _ = break_tie(["a", "b"], {"a": 0.5}, 1e-6)
        assert winner == "b"

    def test_single_candidate(self):
        winner, rationale = break_tie(["z"], {}, 1e-6)
        assert winner == "z"
        assert "only candidate" in rationale


# ============================================
# Preference limits
# ============================================
class TestPreferenceLimits:
    def test_within_limits_passes(self):
        check_preference_limits(
            prefs("fam-a", monday=P, tuesday=P, wednesday=P, thursday=U, friday=U),
            weekday_template(),
        )

    def test_too_many_preferable(self):
        pref_set = prefs("fam-a", monday=P, tuesday=P, wednesday=P, thursday=P)
        with pytest.raises(ValidationError, match="preferable"):
            check_preference_limits(pref_set, weekday_template())

    def test_too_many_less_preferable(self):
        pref_set = prefs("fam-a", monday=L, tuesday=L, wednesday=L)
        with pytest.raises(ValidationError):
            check_preference_limits(pref_set, weekday_template())

    def test_too_many_unavailable(self):
        pref_set = prefs("fam-a", monday=U, tuesday=U, wednesday=U)
        with pytest.raises(ValidationError, match="unavailable"):
            check_preference_limits(pref_set, weekday_template())

    def test_unknown_slot(self):
        pref_set = prefs("fam-a", saturday=P)
        with pytest.raises(ValidationError, match="saturday_morning"):
            check_preference_limits(pref_set, weekday_template())

    def test_validation_error_is_value_error(self):
        assert issubclass(ValidationError, ValueError)

    def test_normalize_downgrades_excess_in_template_order(self):
        pref_set = prefs("fam-a", monday=U, tuesday=U, wednesday=U)
        levels = normalize_preferences(pref_set, weekday_template())
        assert levels["monday_morning"] == U
        assert levels["tuesday_morning"] == U
        assert levels["wednesday_morning"] == PreferenceLevel.NEUTRAL
        assert levels["friday_morning"] == PreferenceLevel.NEUTRAL

    def test_over_limit_preferences_do_not_block_engine(self):
        preferences = [prefs("fam-a", monday=U, tuesday=U, wednesday=U)]
        plan = assign_week(make_group(), WEEK, preferences, {"fam-a": -5.0}, make_families())
        assert plan.assignment_map()["wednesday_morning"] == "fam-a"
        assert plan.assignment_map()["monday_morning"] != "fam-a"
