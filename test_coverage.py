# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for backup driver selection.
"""

from datetime import date

import pytest

from carpool_scheduler.models.domain import (
    Family,
    Group,
    PreferenceLevel,
    VacationRecord,
    WeeklyAssignment,
    WeeklyPreferenceSet,
)
from carpool_scheduler.services.coverage import CoverageArranger

WEEK = date(2025, 9, 1)


def group(members=("fam-a", "fam-b", "fam-c", "fam-d")):
    return Group(id="g1", member_ids=list(members))


def families(**overrides):
    result = {fid: Family(id=fid) for fid in ("fam-a", "fam-b", "fam-c", "fam-d")}
    for key, changes in overrides.items():
        fid = key.replace("_", "-")
        result[fid] = result[fid].model_copy(update=changes)
    return result


def away(family_id="fam-a", start=date(2025, 9, 1), end=date(2025, 9, 5), **kwargs):
    return VacationRecord(
        family_id=family_id, group_id="g1", start_date=start, end_date=end, **kwargs
    )


class TestEligibility:
    def test_lowest_debt_first(self):
        debts = {"fam-b": 1.0, "fam-c": -2.0, "fam-d": 0.0}
        result = CoverageArranger().arrange(away(), group(), families(), debts)
        assert result.backup_drivers == ["fam-c", "fam-d"]
        assert result.vacation.coverage_arranged is True
        assert result.vacation.backup_drivers == ["fam-c", "fam-d"]
        assert result.missing is None
        assert result.arranged

    def test_ties_by_family_id(self):
        result = CoverageArranger().arrange(away(), group(), families(), {})
        assert result.backup_drivers == ["fam-b", "fam-c"]

    def test_never_picks_vacationing_family(self):
        result = CoverageArranger(max_backups=5).arrange(
            away(), group(), families(), {"fam-a": -10.0}
        )
        assert "fam-a" not in result.backup_drivers

    def test_inactive_and_non_drivers_skipped(self):
        result = CoverageArranger().arrange(
            away(), group(), families(fam_b={"active": False}, fam_c={"can_drive": False}), {}
        )
        assert result.backup_drivers == ["fam-d"]

    def test_overlapping_vacation_skipped(self):
        others = [away("fam-b", start=date(2025, 9, 5), end=date(2025, 9, 12))]
        result = CoverageArranger().arrange(
            away(), group(), families(), {}, vacations=others
        )
        assert result.backup_drivers == ["fam-c", "fam-d"]

    def test_adjacent_vacation_not_overlapping(self):
        others = [away("fam-b", start=date(2025, 9, 6), end=date(2025, 9, 12))]
        result = CoverageArranger().arrange(
            away(), group(), families(), {}, vacations=others
        )
        assert result.backup_drivers[0] == "fam-b"

    def test_at_most_max_backups(self):
        result = CoverageArranger(max_backups=1).arrange(away(), group(), families(), {})
        assert result.backup_drivers == ["fam-b"]


class TestMissingBackup:
    def test_no_candidates_reported_not_raised(self):
        result = CoverageArranger().arrange(
            away(), group(members=("fam-a",)), families(), {}
        )
        assert result.backup_drivers == []
        assert result.vacation.coverage_arranged is False
        assert result.missing is not None
        assert result.missing.vacation_id == result.vacation.id
        assert result.missing.family_id == "fam-a"
        assert not result.arranged

    def test_everyone_else_away(self):
        others = [away(f) for f in ("fam-b", "fam-c", "fam-d")]
        result = CoverageArranger().arrange(
            away(), group(), families(), {}, vacations=others
        )
        assert result.missing is not None
        assert result.missing.candidates_considered == 3


class TestSlotPolicy:
    def _commitments(self):
        return [
            WeeklyAssignment(
                group_id="g1", week_start_date=WEEK, slot_id="tuesday_morning",
                slot_date=date(2025, 9, 2), family_id="fam-a",
            )
        ]

    def _preferences(self):
        return [
            WeeklyPreferenceSet(
                family_id="fam-b", group_id="g1", week_start_date=WEEK,
                preferences={"tuesday_morning": PreferenceLevel.UNAVAILABLE},
            )
        ]

    def test_slot_policy_skips_unavailable_candidates(self):
        result = CoverageArranger(policy="slot").arrange(
            away(), group(), families(), {},
            committed=self._commitments(), preferences=self._preferences(),
        )
        assert result.backup_drivers == ["fam-c", "fam-d"]

    def test_group_policy_ignores_preferences(self):
        result = CoverageArranger(policy="group").arrange(
            away(), group(), families(), {},
            committed=self._commitments(), preferences=self._preferences(),
        )
        assert result.backup_drivers == ["fam-b", "fam-c"]

    def test_unknown_policy_rejected(self):
        with pytest.raises(ValueError):
            CoverageArranger(policy="nearest")
