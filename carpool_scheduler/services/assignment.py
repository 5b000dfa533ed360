# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Slot assignment, pure computation, no side effects.

Per slot: drop excluded families, then take the first non-empty tier among
preferable, less_preferable and neutral, and pick the lowest fairness debt
inside it. Debts equal within epsilon fall back to family id order, so the
same inputs always yield the same plan.
"""

from datetime import date
from typing import Iterable, Mapping, Optional

from carpool_scheduler.core.config import settings
from carpool_scheduler.core.errors import ValidationError
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.models.domain import (
    ASSIGNMENT_TIERS,
    AssignmentMethod,
    AssignmentStatus,
    ConflictReason,
    Family,
    Group,
    HolidayRecord,
    PreferenceLevel,
    TimeSlot,
    UnfillableSlotConflict,
    VacationRecord,
    WeekPlan,
    WeeklyAssignment,
    WeeklyPreferenceSet,
)
from carpool_scheduler.services.vacation import HOLIDAY_REASON, holiday_slot_ids, slot_date

logger = get_logger(__name__)

# Exclusion reasons, reported per family on unfillable slots
UNKNOWN_FAMILY = "unknown_family"
INACTIVE = "inactive"
CANNOT_DRIVE = "cannot_drive"
ON_VACATION = "on_vacation"
UNAVAILABLE = "unavailable"


def preference_limits() -> dict[PreferenceLevel, int]:
    return {
        PreferenceLevel.PREFERABLE: settings.MAX_PREFERABLE,
        PreferenceLevel.LESS_PREFERABLE: settings.MAX_LESS_PREFERABLE,
        PreferenceLevel.UNAVAILABLE: settings.MAX_UNAVAILABLE,
    }


def check_preference_limits(
    preference_set: WeeklyPreferenceSet,
    template: Optional[Iterable[TimeSlot]] = None,
    limits: Optional[Mapping[PreferenceLevel, int]] = None,
) -> None:
    """Submission-time validation. Raises ValidationError."""
    limits = limits if limits is not None else preference_limits()
    if template is not None:
        known = {slot.id for slot in template}
        unknown = sorted(set(preference_set.preferences) - known)
        if unknown:
            raise ValidationError(f"Unknown time slots: {', '.join(unknown)}")
    for level, limit in limits.items():
        used = preference_set.count(level)
        if used > limit:
            raise ValidationError(
                f"At most {limit} '{level.value}' slots per week (got {used})"
            )


def normalize_preferences(
    preference_set: WeeklyPreferenceSet,
    template: Iterable[TimeSlot],
    limits: Optional[Mapping[PreferenceLevel, int]] = None,
) -> dict[str, PreferenceLevel]:
    """Total slot -> level map; marks beyond a limit fall back to neutral in template order."""
    limits = limits if limits is not None else preference_limits()
    used: dict[PreferenceLevel, int] = {}
    levels: dict[str, PreferenceLevel] = {}
    downgraded: list[str] = []
    for slot in template:
        level = preference_set.preference_for(slot.id)
        limit = limits.get(level)
        if limit is not None:
            if used.get(level, 0) >= limit:
                downgraded.append(slot.id)
                level = PreferenceLevel.NEUTRAL
            else:
                used[level] = used.get(level, 0) + 1
        levels[slot.id] = level
    if downgraded:
        logger.warning(
            "Over-limit preferences treated as neutral: family=%s, slots=%s",
            preference_set.family_id, downgraded,
        )
    return levels


def break_tie(
    candidates: Iterable[str],
    debts: Mapping[str, float],
    epsilon: float,
) -> tuple[str, str]:
    """Lowest debt wins; debts within epsilon of the lowest go to the smallest id."""
    pool = sorted(set(candidates))
    lowest = min(debts.get(fid, 0.0) for fid in pool)
    tied = [fid for fid in pool if debts.get(fid, 0.0) - lowest <= epsilon]
    winner = tied[0]
    if len(pool) == 1:
        rationale = f"only candidate {winner} (debt {lowest:+.2f})"
    elif len(tied) == 1:
        rationale = f"lowest debt {lowest:+.2f} among {len(pool)} candidates"
    else:
        rationale = (
            f"debt tie at {lowest:+.2f} between {', '.join(tied)}; "
            f"lowest family id wins"
        )
    return winner, rationale


def _exclusion_reason(
    family_id: str,
    day: date,
    level: PreferenceLevel,
    families: Mapping[str, Family],
    vacations: Mapping[str, list[VacationRecord]],
) -> Optional[str]:
    family = families.get(family_id)
    if family is None:
        return UNKNOWN_FAMILY
    if not family.active:
        return INACTIVE
    if not family.can_drive:
        return CANNOT_DRIVE
    if any(v.covers(day) for v in vacations.get(family_id, ())):
        return ON_VACATION
    if level == PreferenceLevel.UNAVAILABLE:
        return UNAVAILABLE
    return None


def _conflict_reason(excluded: Mapping[str, str]) -> ConflictReason:
    reasons = set(excluded.values())
    if not reasons or reasons <= {UNKNOWN_FAMILY, INACTIVE}:
        return ConflictReason.EMPTY_GROUP
    if reasons == {ON_VACATION}:
        return ConflictReason.ALL_ON_VACATION
    if reasons == {UNAVAILABLE}:
        return ConflictReason.ALL_UNAVAILABLE
    return ConflictReason.NO_ELIGIBLE_DRIVERS


def assign_week(
    group: Group,
    week_start_date: date,
    preferences: Iterable[WeeklyPreferenceSet],
    debts: Mapping[str, float],
    families: Mapping[str, Family],
    vacations: Iterable[VacationRecord] = (),
    holidays: Iterable[HolidayRecord] = (),
    epsilon: Optional[float] = None,
    limits: Optional[Mapping[PreferenceLevel, int]] = None,
) -> WeekPlan:
    """Produce exactly one assignment per template slot for the week."""
    eps = settings.TIE_EPSILON if epsilon is None else epsilon
    members = sorted(set(group.member_ids))

    levels: dict[str, dict[str, PreferenceLevel]] = {}
    for preference_set in preferences:
        if preference_set.family_id in members:
            levels[preference_set.family_id] = normalize_preferences(
                preference_set, group.template, limits
            )

    vacations_by_family: dict[str, list[VacationRecord]] = {}
    for vacation in vacations:
        if vacation.group_id == group.id:
            vacations_by_family.setdefault(vacation.family_id, []).append(vacation)

    cancelled = set(holiday_slot_ids(group.template, week_start_date, holidays))

    plan = WeekPlan(group_id=group.id, week_start_date=week_start_date)
    for slot in group.template:
        day = slot_date(week_start_date, slot)
        base = {
            "group_id": group.id,
            "week_start_date": week_start_date,
            "slot_id": slot.id,
            "slot_date": day,
        }

        if slot.id in cancelled:
            plan.holiday_slot_ids.append(slot.id)
            plan.assignments.append(WeeklyAssignment(
                **base,
                status=AssignmentStatus.CANCELLED,
                cancellation_reason=HOLIDAY_REASON,
                rationale="Cancelled: school holiday",
            ))
            continue

        slot_levels: dict[str, PreferenceLevel] = {}
        excluded: dict[str, str] = {}
        for family_id in members:
            level = levels.get(family_id, {}).get(slot.id, PreferenceLevel.NEUTRAL)
            reason = _exclusion_reason(
                family_id, day, level, families, vacations_by_family
            )
            if reason is None:
                slot_levels[family_id] = level
            else:
                excluded[family_id] = reason

        if not slot_levels:
            reason = _conflict_reason(excluded)
            plan.conflicts.append(UnfillableSlotConflict(
                slot_id=slot.id, slot_date=day, reason=reason, excluded=excluded,
            ))
            plan.assignments.append(WeeklyAssignment(
                **base,
                method=AssignmentMethod.UNFILLED,
                rationale=f"No eligible drivers ({reason.value})",
            ))
            continue

        for tier in ASSIGNMENT_TIERS:
            pool = [fid for fid, level in slot_levels.items() if level == tier]
            if not pool:
                continue
            winner, why = break_tie(pool, debts, eps)
            plan.assignments.append(WeeklyAssignment(
                **base,
                family_id=winner,
                method=AssignmentMethod(tier.value),
                rationale=f"{tier.value} pass: {why}",
            ))
            break

    return plan
