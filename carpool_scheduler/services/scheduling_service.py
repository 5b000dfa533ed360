# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Weekly schedule generation.

Loads preferences, debts, vacations and holidays, runs the assignment engine,
records the week in the fairness ledger, then persists the assignments and
tells the drivers. The ledger write happens before the assignments are saved
so a rejected recording leaves no half-generated week behind.
"""

import time
from datetime import date
from typing import Any

from carpool_scheduler.core.errors import ScheduleAlreadyGeneratedError
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.metrics.prometheus import (
    SCHEDULE_GENERATION_SECONDS,
    SCHEDULES_GENERATED,
    SLOTS_ASSIGNED,
    UNFILLED_SLOTS,
)
from carpool_scheduler.models.domain import (
    AssignmentMade,
    ScheduleConflict,
    WeeklyAssignment,
)
from carpool_scheduler.repositories.assignment_repository import AssignmentRepository
from carpool_scheduler.repositories.calendar_repository import CalendarRepository
from carpool_scheduler.repositories.group_repository import FamilyRepository, GroupRepository
from carpool_scheduler.repositories.history_repository import HistoryRepository
from carpool_scheduler.repositories.preference_repository import PreferenceRepository
from carpool_scheduler.services.assignment import assign_week
from carpool_scheduler.services.fairness_ledger import FairnessLedger
from carpool_scheduler.services.notification_client import NotificationClient
from carpool_scheduler.services.vacation import VacationAdjuster

logger = get_logger(__name__)


class SchedulingService:
    """Business logic for generating and reading weekly schedules."""

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

    # ── Commands ──

    def generate_schedule(
        self,
        group_id: str,
        week_start_date: date,
        force_regenerate: bool = False,
    ) -> dict[str, Any]:
        """Assign every slot of the week and record it in the ledger.

        Raises KeyError for an unknown group, ScheduleAlreadyGeneratedError
        when the week exists and force_regenerate is false, and
        DuplicateRecordingError when the ledger already holds the week.
        """
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"Group '{group_id}' not found")
        regenerating = self._assignments.exists(group_id, week_start_date)
        if regenerating and not force_regenerate:
            raise ScheduleAlreadyGeneratedError(group_id, week_start_date)

        ledger = FairnessLedger(self._fairness)
        families = self._families.get_many(group.member_ids)
        vacations = self._calendar.vacations_for_group(group_id)
        holidays = self._calendar.holidays_for_group(group_id)

        started = time.perf_counter()
        # Debts as they stood before this week, so regeneration is repeatable
        debts = ledger.snapshot(group_id, exclude_week=week_start_date)
        plan = assign_week(
            group,
            week_start_date,
            self._preferences.load_preferences(group_id, week_start_date),
            debts,
            families,
            vacations=vacations,
            holidays=holidays,
        )
        SCHEDULE_GENERATION_SECONDS.observe(time.perf_counter() - started)

        excused = VacationAdjuster(ledger).excused_for_week(
            group, week_start_date, families, vacations, holidays
        )
        entries = ledger.record_week(
            group_id,
            week_start_date,
            plan.assignments,
            families,
            excused_slots=excused,
            force=force_regenerate,
        )
        self._assignments.save_assignments(group_id, week_start_date, plan.assignments)

        SCHEDULES_GENERATED.labels(regenerated=str(regenerating).lower()).inc()
        for assignment in plan.filled:
            SLOTS_ASSIGNED.labels(method=assignment.method.value).inc()
            event = AssignmentMade(
                group_id=group_id,
                family_id=assignment.family_id,
                week_start_date=week_start_date,
                slot_id=assignment.slot_id,
                slot_date=assignment.slot_date,
                method=assignment.method,
            )
            self._history.record(event)
            self._notifications.notify(assignment.family_id, event)
        for conflict in plan.conflicts:
            UNFILLED_SLOTS.labels(reason=conflict.reason.value).inc()
            event = ScheduleConflict(
                group_id=group_id,
                week_start_date=week_start_date,
                slot_id=conflict.slot_id,
                reason=conflict.reason,
            )
            self._history.record(event)
            if group.admin_family_id:
                self._notifications.notify(group.admin_family_id, event)

        logger.info(
            "Schedule generated: group=%s, week=%s, filled=%d, unfilled=%d, "
            "holiday=%d, regenerated=%s",
            group_id, week_start_date, len(plan.filled), len(plan.conflicts),
            len(plan.holiday_slot_ids), regenerating,
            extra={"group_id": group_id, "week_start_date": week_start_date},
        )
        return {
            "group_id": group_id,
            "week_start_date": week_start_date,
            "regenerated": regenerating,
            "assignments": plan.assignments,
            "conflicts": plan.conflicts,
            "holiday_slot_ids": plan.holiday_slot_ids,
            "fairness": entries,
        }

    # ── Queries ──

    def get_schedule(self, group_id: str, week_start_date: date) -> list[WeeklyAssignment]:
        """Raises KeyError if the week has not been generated."""
        assignments = self._assignments.get_assignments(group_id, week_start_date)
        if assignments is None:
            raise KeyError(
                f"No schedule for group '{group_id}' in week {week_start_date.isoformat()}"
            )
        return assignments

    def list_weeks(self, group_id: str) -> list[date]:
        if not self._groups.exists(group_id):
            raise KeyError(f"Group '{group_id}' not found")
        return self._assignments.weeks_for_group(group_id)
