# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

import uuid
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @property
    def weekday(self) -> int:
        """0=Monday ... 6=Sunday, same as date.weekday()."""
        return _DAY_INDEX[self]


_DAY_INDEX = {day: i for i, day in enumerate(DayOfWeek)}


class PreferenceLevel(str, Enum):
    PREFERABLE = "preferable"
    LESS_PREFERABLE = "less_preferable"
    NEUTRAL = "neutral"
    UNAVAILABLE = "unavailable"


# Assignment passes, highest precedence first
ASSIGNMENT_TIERS: tuple[PreferenceLevel, ...] = (
    PreferenceLevel.PREFERABLE,
    PreferenceLevel.LESS_PREFERABLE,
    PreferenceLevel.NEUTRAL,
)


class AssignmentMethod(str, Enum):
    PREFERABLE = "preferable"
    LESS_PREFERABLE = "less_preferable"
    NEUTRAL = "neutral"
    UNFILLED = "unfilled"


class AssignmentStatus(str, Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class ConflictReason(str, Enum):
    EMPTY_GROUP = "empty_group"
    ALL_UNAVAILABLE = "all_unavailable"
    ALL_ON_VACATION = "all_on_vacation"
    NO_ELIGIBLE_DRIVERS = "no_eligible_drivers"


# ── Reference data ──

class TimeSlot(BaseModel):
    """One recurring duty within a group's weekly template."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", max_length=255)
    day_of_week: DayOfWeek
    time_of_day: str = Field(default="morning", min_length=1, max_length=50)
    route_tag: str = Field(default="", max_length=100)

    @model_validator(mode="before")
    @classmethod
    def derive_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            day = data.get("day_of_week")
            day = day.value if isinstance(day, DayOfWeek) else str(day).lower()
            parts = [day, data.get("time_of_day") or "morning"]
            if data.get("route_tag"):
                parts.append(data["route_tag"])
            data = {**data, "id": "_".join(parts)}
        return data

    @field_validator("day_of_week", mode="before")
    @classmethod
    def lowercase_day(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v


class Family(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    name: str = ""
    active: bool = True
    children_count: int = Field(default=1, ge=0)
    can_drive: bool = True
    group_ids: list[str] = Field(default_factory=list)


class Group(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    name: str = ""
    admin_family_id: Optional[str] = None
    template: list[TimeSlot] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_slot_ids(self) -> "Group":
        ids = [s.id for s in self.template]
        if len(ids) != len(set(ids)):
            raise ValueError("Time slot ids must be unique within a group template")
        return self

    def slot(self, slot_id: str) -> Optional[TimeSlot]:
        return next((s for s in self.template if s.id == slot_id), None)


# ── Preferences ──

class WeeklyPreferenceSet(BaseModel):
    """One family's preferences for one group and week."""
    family_id: str
    group_id: str
    week_start_date: date
    preferences: dict[str, PreferenceLevel] = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None

    def preference_for(self, slot_id: str) -> PreferenceLevel:
        """Unmapped slots are neutral."""
        return self.preferences.get(slot_id, PreferenceLevel.NEUTRAL)

    def count(self, level: PreferenceLevel) -> int:
        return sum(1 for v in self.preferences.values() if v == level)


# ── Fairness ──

class WeeklyHistoryEntry(BaseModel):
    week_start_date: date
    assigned_trips: int
    fair_share: float
    debt_change: float
    children_count_at_recording: int
    total_children_at_recording: int
    excused_slots: int = 0
    recorded_at: datetime = Field(default_factory=utcnow)


class ManualAdjustment(BaseModel):
    amount: float
    reason: str
    admin_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)


class FairnessRecord(BaseModel):
    family_id: str
    group_id: str
    total_trips: int = 0
    total_weeks: int = 0
    fairness_debt: float = 0.0
    children_count: int = 1
    weekly_history: list[WeeklyHistoryEntry] = Field(default_factory=list)
    vacation_adjustments: int = 0
    manual_adjustments: list[ManualAdjustment] = Field(default_factory=list)
    tracking_period_start: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    def history_for(self, week_start_date: date) -> Optional[WeeklyHistoryEntry]:
        return next(
            (e for e in self.weekly_history if e.week_start_date == week_start_date),
            None,
        )


# ── Assignments ──

class WeeklyAssignment(BaseModel):
    group_id: str
    week_start_date: date
    slot_id: str
    slot_date: date
    family_id: Optional[str] = None
    method: Optional[AssignmentMethod] = None
    rationale: str = ""
    status: AssignmentStatus = AssignmentStatus.SCHEDULED
    cancellation_reason: Optional[str] = None

    @property
    def is_filled(self) -> bool:
        return self.status == AssignmentStatus.SCHEDULED and self.family_id is not None


class UnfillableSlotConflict(BaseModel):
    """A slot nobody could take; handed to the admin, never raised."""
    slot_id: str
    slot_date: date
    reason: ConflictReason
    excluded: dict[str, str] = Field(default_factory=dict)


class WeekPlan(BaseModel):
    group_id: str
    week_start_date: date
    assignments: list[WeeklyAssignment] = Field(default_factory=list)
    conflicts: list[UnfillableSlotConflict] = Field(default_factory=list)
    holiday_slot_ids: list[str] = Field(default_factory=list)

    def assignment_map(self) -> dict[str, Optional[str]]:
        return {a.slot_id: a.family_id for a in self.assignments}

    @property
    def filled(self) -> list[WeeklyAssignment]:
        return [a for a in self.assignments if a.is_filled]


# ── Calendar ──

class VacationRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    family_id: str = Field(..., min_length=1)
    group_id: str = Field(..., min_length=1)
    name: str = "Family vacation"
    kind: str = Field(
        default="family_vacation",
        pattern="^(family_vacation|parent_travel|child_absence)$",
    )
    start_date: date
    end_date: date
    affected_members: list[str] = Field(default_factory=list)
    coverage_needed: bool = True
    coverage_arranged: bool = False
    backup_drivers: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_range(self) -> "VacationRecord":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date


class HolidayRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    group_id: str = Field(..., min_length=1)
    name: str = "School holiday"
    kind: str = Field(
        default="school_holiday",
        pattern="^(school_holiday|teacher_workday|semester_break|weather_closure)$",
    )
    start_date: date
    end_date: date
    auto_adjust_scheduling: bool = True
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def check_range(self) -> "HolidayRecord":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


class MissingBackup(BaseModel):
    """No eligible backup driver for a vacation; reported, not raised."""
    vacation_id: str
    family_id: str
    candidates_considered: int = 0
    reason: str = "No eligible backup drivers in group"


# ── Events ──

class _Event(BaseModel):
    group_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class AssignmentMade(_Event):
    event_type: Literal["assignment_made"] = "assignment_made"
    family_id: str
    week_start_date: date
    slot_id: str
    slot_date: date
    method: AssignmentMethod


class DebtAdjusted(_Event):
    event_type: Literal["debt_adjusted"] = "debt_adjusted"
    family_id: str
    amount: float
    reason: str
    source: Literal["weekly", "manual"] = "weekly"


class CoverageArranged(_Event):
    event_type: Literal["coverage_arranged"] = "coverage_arranged"
    family_id: str
    vacation_id: str
    backup_driver_ids: list[str]
    start_date: date
    end_date: date


class CoverageMissing(_Event):
    event_type: Literal["coverage_missing"] = "coverage_missing"
    family_id: str
    vacation_id: str
    reason: str


class HolidayDeclared(_Event):
    event_type: Literal["holiday_declared"] = "holiday_declared"
    holiday_id: str
    name: str
    start_date: date
    end_date: date
    cancelled_assignments: int = 0


class ScheduleConflict(_Event):
    event_type: Literal["schedule_conflict"] = "schedule_conflict"
    week_start_date: date
    slot_id: str
    reason: ConflictReason


class TrackingPeriodReset(_Event):
    event_type: Literal["tracking_period_reset"] = "tracking_period_reset"
    families_reset: int
    period_start: datetime


CarpoolEvent = Annotated[
    Union[
        AssignmentMade,
        DebtAdjusted,
        CoverageArranged,
        CoverageMissing,
        HolidayDeclared,
        ScheduleConflict,
        TrackingPeriodReset,
    ],
    Field(discriminator="event_type"),
]
