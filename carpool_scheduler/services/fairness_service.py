# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Fairness reporting, manual recording and administrative adjustments.
"""

from datetime import date
from typing import Any, Optional

from carpool_scheduler.core.errors import ValidationError
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.models.domain import (
    AssignmentStatus,
    DebtAdjusted,
    FairnessRecord,
    TrackingPeriodReset,
    WeeklyAssignment,
    WeeklyHistoryEntry,
    utcnow,
)
from carpool_scheduler.repositories.calendar_repository import CalendarRepository
from carpool_scheduler.repositories.group_repository import FamilyRepository, GroupRepository
from carpool_scheduler.repositories.history_repository import HistoryRepository
from carpool_scheduler.services.fairness_ledger import FairnessLedger
from carpool_scheduler.services.notification_client import NotificationClient
from carpool_scheduler.services.vacation import (
    HOLIDAY_REASON,
    excused_slots,
    holiday_slot_ids,
    slot_date,
)

logger = get_logger(__name__)


class FairnessService:
    """Business logic around the fairness ledger."""

    def __init__(
        self,
        group_repo: GroupRepository,
        family_repo: FamilyRepository,
        calendar_repo: CalendarRepository,
        fairness_repo,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
    ) -> None:
        self._groups = group_repo
        self._families = family_repo
        self._calendar = calendar_repo
        self._fairness = fairness_repo
        self._history = history_repo
        self._notifications = notification_client

    def _group(self, group_id: str):
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"Group '{group_id}' not found")
        return group

    def _ledger(self) -> FairnessLedger:
        return FairnessLedger(self._fairness)

    # ── Queries ──

    def get_dashboard(self, group_id: str) -> dict[str, Any]:
        group = self._group(group_id)
        return self._ledger().get_dashboard(
            group_id, self._families.get_many(group.member_ids)
        )

    def get_family_history(self, group_id: str, family_id: str) -> dict[str, Any]:
        group = self._group(group_id)
        if family_id not in group.member_ids and self._fairness.get(group_id, family_id) is None:
            raise KeyError(f"Family '{family_id}' not found in group '{group_id}'")
        return self._ledger().get_family_history(group_id, family_id)

    def list_events(
        self,
        group_id: str,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        self._group(group_id)
        return self._history.get_all(group_id=group_id, event_type=event_type, limit=limit)

    # ── Commands ──

    def record_week(
        self,
        group_id: str,
        week_start_date: date,
        driven: dict[str, Optional[str]],
        force: bool = False,
    ) -> dict[str, WeeklyHistoryEntry]:
        """Record a week driven outside the generator (slot id -> family id).

        Template slots missing from `driven` count as unfilled. Slots on a
        school holiday are cancelled whatever `driven` says.
        """
        group = self._group(group_id)
        unknown = sorted(s for s in driven if group.slot(s) is None)
        if unknown:
            raise ValidationError(f"Unknown time slots: {', '.join(unknown)}")
        strangers = sorted({f for f in driven.values() if f and f not in group.member_ids})
        if strangers:
            raise ValidationError(
                f"Not members of group '{group_id}': {', '.join(strangers)}"
            )

        families = self._families.get_many(group.member_ids)
        vacations = self._calendar.vacations_for_group(group_id)
        holidays = self._calendar.holidays_for_group(group_id)
        template = self._groups.load_group_template(group_id)
        cancelled = set(holiday_slot_ids(template, week_start_date, holidays))
        assignments = []
        for slot in template:
            base = {
                "group_id": group_id,
                "week_start_date": week_start_date,
                "slot_id": slot.id,
                "slot_date": slot_date(week_start_date, slot),
            }
            if slot.id in cancelled:
                assignments.append(WeeklyAssignment(
                    **base,
                    status=AssignmentStatus.CANCELLED,
                    cancellation_reason=HOLIDAY_REASON,
                    rationale="Cancelled: school holiday",
                ))
            else:
                assignments.append(WeeklyAssignment(
                    **base, family_id=driven.get(slot.id), rationale="Recorded manually",
                ))
        entries = self._ledger().record_week(
            group_id,
            week_start_date,
            assignments,
            families,
            excused_slots=excused_slots(
                group.template, week_start_date, families, vacations, holidays
            ),
            force=force,
        )
        for family_id, entry in entries.items():
            self._history.record(DebtAdjusted(
                group_id=group_id,
                family_id=family_id,
                amount=entry.debt_change,
                reason=f"Week of {week_start_date.isoformat()}",
                source="weekly",
            ))
        return entries

    def apply_manual_adjustment(
        self,
        group_id: str,
        family_id: str,
        amount: float,
        reason: str,
        admin_id: Optional[str] = None,
    ) -> FairnessRecord:
        group = self._group(group_id)
        if family_id not in group.member_ids:
            raise KeyError(f"Family '{family_id}' not found in group '{group_id}'")
        if not reason.strip():
            raise ValidationError("A reason is required for manual adjustments")
        record = self._ledger().apply_manual_adjustment(
            group_id, family_id, amount, reason, admin_id
        )
        event = DebtAdjusted(
            group_id=group_id,
            family_id=family_id,
            amount=amount,
            reason=reason,
            source="manual",
        )
        self._history.record(event)
        self._notifications.notify(family_id, event)
        return record

    def reset_tracking_period(self, group_id: str) -> dict[str, Any]:
        self._group(group_id)
        records = self._ledger().reset(group_id)
        period_start = records[0].tracking_period_start if records else utcnow()
        self._history.record(TrackingPeriodReset(
            group_id=group_id,
            families_reset=len(records),
            period_start=period_start,
        ))
        return {
            "group_id": group_id,
            "families_reset": len(records),
            "tracking_period_start": period_start,
        }
