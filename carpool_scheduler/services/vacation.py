# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Vacation and holiday adjustments.

Calendar math is pure; `VacationAdjuster` is the only part that writes, and
it writes through the fairness ledger.
"""

from datetime import date, timedelta
from typing import Iterable, Mapping

from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.models.domain import (
    AssignmentStatus,
    FairnessRecord,
    Group,
    HolidayRecord,
    TimeSlot,
    VacationRecord,
    WeeklyAssignment,
)
from carpool_scheduler.services.fairness_ledger import FairnessLedger

logger = get_logger(__name__)

HOLIDAY_REASON = "holiday"


def slot_date(week_start_date: date, slot: TimeSlot) -> date:
    """Calendar date of a template slot within the week starting on week_start_date."""
    offset = (slot.day_of_week.weekday - week_start_date.weekday()) % 7
    return week_start_date + timedelta(days=offset)


def week_start_for(day: date) -> date:
    """Monday of the week containing day."""
    return day - timedelta(days=day.weekday())


def exclude_slots(
    template: Iterable[TimeSlot], week_start_date: date, start: date, end: date
) -> list[str]:
    """Ids of the week's slots whose date falls inside [start, end]."""
    return [
        slot.id
        for slot in template
        if start <= slot_date(week_start_date, slot) <= end
    ]


def calendar_days(start: date, end: date) -> int:
    return (end - start).days + 1


def vacation_days(start: date, end: date) -> int:
    """Weekday approximation: floor(calendar days * 5 / 7), both ends inclusive."""
    return calendar_days(start, end) * 5 // 7


def holiday_slot_ids(
    template: Iterable[TimeSlot],
    week_start_date: date,
    holidays: Iterable[HolidayRecord],
) -> list[str]:
    active = [h for h in holidays if h.auto_adjust_scheduling]
    return [
        slot.id
        for slot in template
        if any(h.covers(slot_date(week_start_date, slot)) for h in active)
    ]


def excused_slots(
    template: Iterable[TimeSlot],
    week_start_date: date,
    family_ids: Iterable[str],
    vacations: Iterable[VacationRecord],
    holidays: Iterable[HolidayRecord] = (),
) -> dict[str, int]:
    """Per family, how many of the week's schedulable slots its vacations cover.

    Holiday slots are not schedulable for anyone and are never counted.
    """
    template = list(template)
    cancelled = set(holiday_slot_ids(template, week_start_date, holidays))
    dates = [
        slot_date(week_start_date, s) for s in template if s.id not in cancelled
    ]
    by_family: dict[str, list[VacationRecord]] = {}
    for vacation in vacations:
        by_family.setdefault(vacation.family_id, []).append(vacation)

    result: dict[str, int] = {}
    for family_id in family_ids:
        own = by_family.get(family_id, [])
        covered = sum(1 for d in dates if any(v.covers(d) for v in own))
        if covered:
            result[family_id] = covered
    return result


def cancel_for_holiday(
    assignments: Iterable[WeeklyAssignment], holiday: HolidayRecord
) -> tuple[list[WeeklyAssignment], list[WeeklyAssignment]]:
    """Return (all assignments after cancellation, the ones newly cancelled)."""
    updated: list[WeeklyAssignment] = []
    cancelled: list[WeeklyAssignment] = []
    for assignment in assignments:
        if (
            assignment.status == AssignmentStatus.SCHEDULED
            and holiday.covers(assignment.slot_date)
        ):
            assignment = assignment.model_copy(update={
                "status": AssignmentStatus.CANCELLED,
                "cancellation_reason": HOLIDAY_REASON,
                "rationale": f"Cancelled: {holiday.name}",
            })
            cancelled.append(assignment)
        updated.append(assignment)
    return updated, cancelled


class VacationAdjuster:
    """Strips unavailable slots and reduces fair share for vacationing families."""

    def __init__(self, ledger: FairnessLedger) -> None:
        self._ledger = ledger

    def exclude_slots(
        self, group: Group, start: date, end: date
    ) -> dict[date, list[str]]:
        """Affected slot ids per week (keyed by Monday) for a date range."""
        affected: dict[date, list[str]] = {}
        week = week_start_for(start)
        while week <= end:
            slot_ids = exclude_slots(group.template, week, start, end)
            if slot_ids:
                affected[week] = slot_ids
            week += timedelta(days=7)
        return affected

    def adjust_fair_share(
        self,
        family_id: str,
        group_id: str,
        days: int,
        children_count: int = 1,
    ) -> FairnessRecord:
        """Record excused vacation days for a family.

        The weekly fair share itself is reduced when the week is recorded,
        in proportion to the slots the vacation covers.
        """
        record = self._ledger.add_vacation_days(
            group_id, family_id, days, children_count=children_count
        )
        logger.info(
            "Vacation adjustment: group=%s, family=%s, days=%d",
            group_id, family_id, days,
        )
        return record

    def restore_fair_share(
        self, family_id: str, group_id: str, days: int
    ) -> FairnessRecord:
        """Take back the days credited for a vacation that was withdrawn."""
        record = self._ledger.add_vacation_days(group_id, family_id, -days)
        logger.info(
            "Vacation adjustment withdrawn: group=%s, family=%s, days=%d",
            group_id, family_id, days,
        )
        return record

    def excused_for_week(
        self,
        group: Group,
        week_start_date: date,
        family_ids: Iterable[str],
        vacations: Iterable[VacationRecord],
        holidays: Iterable[HolidayRecord] = (),
    ) -> Mapping[str, int]:
        return excused_slots(
            group.template, week_start_date, family_ids, vacations, holidays
        )
