# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Backup driver selection for vacations.
Pure computation; callers persist the result.
"""

from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, Field

from carpool_scheduler.core.config import settings
from carpool_scheduler.models.domain import (
    Family,
    Group,
    MissingBackup,
    PreferenceLevel,
    VacationRecord,
    WeeklyAssignment,
    WeeklyPreferenceSet,
)

POLICIES = ("group", "slot")


class CoverageResult(BaseModel):
    vacation: VacationRecord
    backup_drivers: list[str] = Field(default_factory=list)
    missing: Optional[MissingBackup] = None

    @property
    def arranged(self) -> bool:
        return self.missing is None


class CoverageArranger:
    """Picks up to max_backups drivers, most owed (lowest debt) first.

    Policy "group" accepts any eligible member. Policy "slot" also drops
    candidates who marked unavailable a slot the vacationing family is
    committed to during the vacation.
    """

    def __init__(
        self, max_backups: Optional[int] = None, policy: Optional[str] = None
    ) -> None:
        self.max_backups = (
            settings.MAX_BACKUP_DRIVERS if max_backups is None else max_backups
        )
        self.policy = policy or settings.BACKUP_MATCH_POLICY
        if self.policy not in POLICIES:
            raise ValueError(
                f"Unknown backup match policy '{self.policy}' (use one of {POLICIES})"
            )

    def eligible_backups(
        self,
        vacation: VacationRecord,
        group: Group,
        families: Mapping[str, Family],
        debts: Mapping[str, float],
        vacations: Iterable[VacationRecord] = (),
        committed: Iterable[WeeklyAssignment] = (),
        preferences: Iterable[WeeklyPreferenceSet] = (),
    ) -> list[str]:
        away = {
            v.family_id
            for v in vacations
            if v.id != vacation.id and v.overlaps(vacation.start_date, vacation.end_date)
        }
        blocked: set[str] = set()
        if self.policy == "slot":
            duties = {
                (a.week_start_date, a.slot_id)
                for a in committed
                if a.family_id == vacation.family_id
                and a.is_filled
                and vacation.covers(a.slot_date)
            }
            for pref in preferences:
                for week, slot_id in duties:
                    if (
                        pref.week_start_date == week
                        and pref.preference_for(slot_id) == PreferenceLevel.UNAVAILABLE
                    ):
                        blocked.add(pref.family_id)

        candidates = []
        for family_id in set(group.member_ids):
            family = families.get(family_id)
            if (
                family_id == vacation.family_id
                or family is None
                or not family.active
                or not family.can_drive
                or family_id in away
                or family_id in blocked
            ):
                continue
            candidates.append(family_id)
        return sorted(candidates, key=lambda fid: (debts.get(fid, 0.0), fid))

    def arrange(
        self,
        vacation: VacationRecord,
        group: Group,
        families: Mapping[str, Family],
        debts: Mapping[str, float],
        vacations: Iterable[VacationRecord] = (),
        committed: Iterable[WeeklyAssignment] = (),
        preferences: Iterable[WeeklyPreferenceSet] = (),
    ) -> CoverageResult:
        candidates = self.eligible_backups(
            vacation, group, families, debts, vacations, committed, preferences
        )
        chosen = candidates[: self.max_backups]
        updated = vacation.model_copy(update={
            "backup_drivers": chosen,
            "coverage_arranged": bool(chosen),
        })
        if not chosen:
            return CoverageResult(
                vacation=updated,
                missing=MissingBackup(
                    vacation_id=vacation.id,
                    family_id=vacation.family_id,
                    candidates_considered=len(set(group.member_ids) - {vacation.family_id}),
                ),
            )
        return CoverageResult(vacation=updated, backup_drivers=chosen)
