# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Vacations, backup coverage and school holidays.
"""

from typing import Any

from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.metrics.prometheus import COVERAGE_OUTCOMES, HOLIDAY_CANCELLATIONS
from carpool_scheduler.models.domain import (
    CoverageArranged,
    CoverageMissing,
    HolidayDeclared,
    HolidayRecord,
    VacationRecord,
)
from carpool_scheduler.repositories.assignment_repository import AssignmentRepository
from carpool_scheduler.repositories.calendar_repository import CalendarRepository
from carpool_scheduler.repositories.group_repository import FamilyRepository, GroupRepository
from carpool_scheduler.repositories.history_repository import HistoryRepository
from carpool_scheduler.repositories.preference_repository import PreferenceRepository
from carpool_scheduler.services.coverage import CoverageArranger, CoverageResult
from carpool_scheduler.services.fairness_ledger import FairnessLedger
from carpool_scheduler.services.notification_client import NotificationClient
from carpool_scheduler.services.vacation import (
    VacationAdjuster,
    cancel_for_holiday,
    excused_slots,
    vacation_days,
)

logger = get_logger(__name__)


class CalendarService:
    """Business logic for calendar exceptions to the weekly template."""

    def __init__(
        self,
        group_repo: GroupRepository,
        family_repo: FamilyRepository,
        preference_repo: PreferenceRepository,
        assignment_repo: AssignmentRepository,
        calendar_repo: CalendarRepository,
        fairness_repo,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
    ) -> None:
        self._groups = group_repo
        self._families = family_repo
        self._preferences = preference_repo
        self._assignments = assignment_repo
        self._calendar = calendar_repo
        self._fairness = fairness_repo
        self._history = history_repo
        self._notifications = notification_client

    def _group(self, group_id: str):
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"Group '{group_id}' not found")
        return group

    # ── Vacations ──

    def record_vacation(self, vacation: VacationRecord) -> dict[str, Any]:
        """Store a vacation, credit its weekdays, and arrange backups if asked.

        Raises KeyError for unknown group or family, ValueError when the
        family is not a member of the group.
        """
        group = self._group(vacation.group_id)
        family = self._families.get(vacation.family_id)
        if family is None:
            raise KeyError(f"Family '{vacation.family_id}' not found")
        if family.id not in group.member_ids:
            raise ValueError(
                f"Family '{family.id}' is not a member of group '{group.id}'"
            )

        self._calendar.save_vacation(vacation)
        adjuster = VacationAdjuster(FairnessLedger(self._fairness))
        days = vacation_days(vacation.start_date, vacation.end_date)
        record = adjuster.adjust_fair_share(
            family.id, group.id, days, children_count=family.children_count
        )
        affected = adjuster.exclude_slots(group, vacation.start_date, vacation.end_date)
        logger.info(
            "Vacation recorded: group=%s, family=%s, %s..%s, weekdays=%d",
            group.id, family.id, vacation.start_date, vacation.end_date, days,
            extra={"group_id": group.id, "family_id": family.id, "vacation_id": vacation.id},
        )

        coverage = None
        if vacation.coverage_needed:
            coverage = self.arrange_coverage(group.id, vacation.id)
            vacation = coverage.vacation
        return {
            "vacation": vacation,
            "vacation_days": days,
            "vacation_adjustments": record.vacation_adjustments,
            "affected_slots": {
                week.isoformat(): slot_ids for week, slot_ids in affected.items()
            },
            "coverage": coverage,
        }

    def arrange_coverage(self, group_id: str, vacation_id: str) -> CoverageResult:
        """Pick backups for a stored vacation. A shortfall is reported, not raised."""
        group = self._group(group_id)
        vacation = self._calendar.get_vacation(vacation_id)
        if vacation is None or vacation.group_id != group_id:
            raise KeyError(f"Vacation '{vacation_id}' not found in group '{group_id}'")

        committed = []
        preferences = []
        for week in self._assignments.weeks_for_group(group_id):
            committed.extend(self._assignments.get_assignments(group_id, week) or [])
            preferences.extend(self._preferences.load_preferences(group_id, week))

        result = CoverageArranger().arrange(
            vacation,
            group,
            self._families.get_many(group.member_ids),
            FairnessLedger(self._fairness).snapshot(group_id),
            vacations=self._calendar.vacations_for_group(group_id),
            committed=committed,
            preferences=preferences,
        )
        self._calendar.save_vacation(result.vacation)

        if result.missing is None:
            COVERAGE_OUTCOMES.labels(outcome="arranged").inc()
            event = CoverageArranged(
                group_id=group_id,
                family_id=vacation.family_id,
                vacation_id=vacation.id,
                backup_driver_ids=result.backup_drivers,
                start_date=vacation.start_date,
                end_date=vacation.end_date,
            )
            self._history.record(event)
            for family_id in [vacation.family_id, *result.backup_drivers]:
                self._notifications.notify(family_id, event)
            logger.info(
                "Coverage arranged: group=%s, vacation=%s, backups=%s",
                group_id, vacation.id, result.backup_drivers,
                extra={"group_id": group_id, "vacation_id": vacation.id},
            )
        else:
            COVERAGE_OUTCOMES.labels(outcome="missing").inc()
            event = CoverageMissing(
                group_id=group_id,
                family_id=vacation.family_id,
                vacation_id=vacation.id,
                reason=result.missing.reason,
            )
            self._history.record(event)
            self._notifications.notify(vacation.family_id, event)
            if group.admin_family_id and group.admin_family_id != vacation.family_id:
                self._notifications.notify(group.admin_family_id, event)
            logger.warning(
                "No backup drivers: group=%s, vacation=%s, considered=%d",
                group_id, vacation.id, result.missing.candidates_considered,
                extra={"group_id": group_id, "vacation_id": vacation.id},
            )
        return result

    def list_vacations(self, group_id: str) -> list[VacationRecord]:
        self._group(group_id)
        return self._calendar.vacations_for_group(group_id)

    def delete_vacation(self, group_id: str, vacation_id: str) -> VacationRecord:
        vacation = self._calendar.get_vacation(vacation_id)
        if vacation is None or vacation.group_id != group_id:
            raise KeyError(f"Vacation '{vacation_id}' not found in group '{group_id}'")
        self._calendar.delete_vacation(vacation_id)
        record = VacationAdjuster(FairnessLedger(self._fairness)).restore_fair_share(
            vacation.family_id,
            group_id,
            vacation_days(vacation.start_date, vacation.end_date),
        )
        logger.info(
            "Vacation deleted: group=%s, vacation=%s, vacation_adjustments=%d",
            group_id, vacation_id, record.vacation_adjustments,
        )
        return vacation

    # ── Holidays ──

    def record_holiday(self, holiday: HolidayRecord) -> dict[str, Any]:
        """Store a holiday and cancel generated assignments that fall on it.

        Weeks already in the fairness ledger are re-recorded over the
        remaining slots, so nobody's debt moves because of the holiday.
        """
        group = self._group(holiday.group_id)
        self._calendar.save_holiday(holiday)

        cancelled_total = 0
        rerecorded = []
        if holiday.auto_adjust_scheduling:
            ledger = FairnessLedger(self._fairness)
            families = self._families.get_many(group.member_ids)
            vacations = self._calendar.vacations_for_group(group.id)
            holidays = self._calendar.holidays_for_group(group.id)
            for week in self._assignments.weeks_for_group(group.id):
                assignments = self._assignments.get_assignments(group.id, week) or []
                updated, cancelled = cancel_for_holiday(assignments, holiday)
                if not cancelled:
                    continue
                self._assignments.save_assignments(group.id, week, updated)
                cancelled_total += len(cancelled)
                if ledger.is_recorded(group.id, week):
                    ledger.record_week(
                        group.id,
                        week,
                        updated,
                        families,
                        excused_slots=excused_slots(
                            group.template, week, families, vacations, holidays
                        ),
                        force=True,
                    )
                    rerecorded.append(week)

        HOLIDAY_CANCELLATIONS.inc(cancelled_total)
        event = HolidayDeclared(
            group_id=group.id,
            holiday_id=holiday.id,
            name=holiday.name,
            start_date=holiday.start_date,
            end_date=holiday.end_date,
            cancelled_assignments=cancelled_total,
        )
        self._history.record(event)
        for family_id in sorted(group.member_ids):
            self._notifications.notify(family_id, event)
        logger.info(
            "Holiday recorded: group=%s, %s..%s, cancelled=%d, rerecorded_weeks=%d",
            group.id, holiday.start_date, holiday.end_date,
            cancelled_total, len(rerecorded),
            extra={"group_id": group.id, "holiday_id": holiday.id},
        )
        return {
            "holiday": holiday,
            "cancelled_assignments": cancelled_total,
            "rerecorded_weeks": rerecorded,
        }

    def list_holidays(self, group_id: str) -> list[HolidayRecord]:
        self._group(group_id)
        return self._calendar.holidays_for_group(group_id)

    def delete_holiday(self, group_id: str, holiday_id: str) -> HolidayRecord:
        holiday = self._calendar.get_holiday(holiday_id)
        if holiday is None or holiday.group_id != group_id:
            raise KeyError(f"Holiday '{holiday_id}' not found in group '{group_id}'")
        self._calendar.delete_holiday(holiday_id)
        logger.info("Holiday deleted: group=%s, holiday=%s", group_id, holiday_id)
        return holiday
