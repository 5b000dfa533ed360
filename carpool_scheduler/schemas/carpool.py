# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from carpool_scheduler.models.domain import (
    FairnessRecord,
    HolidayRecord,
    MissingBackup,
    PreferenceLevel,
    TimeSlot,
    UnfillableSlotConflict,
    VacationRecord,
    WeeklyAssignment,
    WeeklyHistoryEntry,
)


# ── Group Schemas ──

class GroupUpsertRequest(BaseModel):
    name: str = Field(default="", max_length=255)
    admin_family_id: Optional[str] = None
    template: list[TimeSlot] = Field(default_factory=list)
    member_ids: list[str] = Field(default_factory=list)


class FamilyUpsertRequest(BaseModel):
    name: str = Field(default="", max_length=255)
    active: bool = True
    children_count: int = Field(default=1, ge=0, le=20)
    can_drive: bool = True


# ── Preference Schemas ──

class PreferenceSubmitRequest(BaseModel):
    """Slot id -> level. Slots left out are neutral."""
    preferences: dict[str, PreferenceLevel] = Field(default_factory=dict)


# ── Schedule Schemas ──

class ScheduleGenerateRequest(BaseModel):
    week_start_date: date
    force_regenerate: bool = False


class ScheduleResponse(BaseModel):
    group_id: str
    week_start_date: date
    regenerated: bool
    assignments: list[WeeklyAssignment]
    conflicts: list[UnfillableSlotConflict]
    holiday_slot_ids: list[str]
    fairness: dict[str, WeeklyHistoryEntry]


# ── Calendar Schemas ──

class VacationCreateRequest(BaseModel):
    family_id: str = Field(..., min_length=1)
    name: str = Field(default="Family vacation", max_length=255)
    kind: str = Field(
        default="family_vacation",
        pattern="^(family_vacation|parent_travel|child_absence)$",
    )
    start_date: date
    end_date: date
    affected_members: list[str] = Field(default_factory=list)
    coverage_needed: bool = True

    @model_validator(mode="after")
    def check_range(self) -> "VacationCreateRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class CoverageResponse(BaseModel):
    vacation: VacationRecord
    backup_drivers: list[str]
    missing: Optional[MissingBackup] = None


class VacationResponse(BaseModel):
    vacation: VacationRecord
    vacation_days: int
    vacation_adjustments: int
    affected_slots: dict[str, list[str]]
    coverage: Optional[CoverageResponse] = None


class HolidayCreateRequest(BaseModel):
    name: str = Field(default="School holiday", max_length=255)
    kind: str = Field(
        default="school_holiday",
        pattern="^(school_holiday|teacher_workday|semester_break|weather_closure)$",
    )
    start_date: date
    end_date: date
    auto_adjust_scheduling: bool = True

    @model_validator(mode="after")
    def check_range(self) -> "HolidayCreateRequest":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class HolidayResponse(BaseModel):
    holiday: HolidayRecord
    cancelled_assignments: int
    rerecorded_weeks: list[date]


# ── Fairness Schemas ──

class WeekRecordRequest(BaseModel):
    week_start_date: date
    assignments: dict[str, Optional[str]] = Field(
        ..., description="Slot id -> family id that drove it"
    )
    force: bool = False


class ManualAdjustmentRequest(BaseModel):
    family_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=-50, le=50)
    reason: str = Field(..., min_length=1, max_length=1000)
    admin_id: Optional[str] = None


class TrendResponse(BaseModel):
    direction: str
    recent_average_trips: float
    equity_improving: bool
    weeks_considered: int


class FamilyHistoryResponse(BaseModel):
    record: FairnessRecord
    trend: TrendResponse
    equity_score: int


class ResetResponse(BaseModel):
    group_id: str
    families_reset: int
    tracking_period_start: datetime
