# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Family vacations and school holidays.
"""

from typing import Optional

from carpool_scheduler.models.domain import HolidayRecord, VacationRecord


class CalendarRepository:
    """In-memory vacation and holiday storage."""

    def __init__(self) -> None:
        self._vacations: dict[str, VacationRecord] = {}
        self._holidays: dict[str, HolidayRecord] = {}

    # ── Vacations ──

    def get_vacation(self, vacation_id: str) -> Optional[VacationRecord]:
        return self._vacations.get(vacation_id)

    def vacations_for_group(self, group_id: str) -> list[VacationRecord]:
        return sorted(
            (v for v in self._vacations.values() if v.group_id == group_id),
            key=lambda v: (v.start_date, v.id),
        )

    def save_vacation(self, vacation: VacationRecord) -> None:
        self._vacations[vacation.id] = vacation

    def delete_vacation(self, vacation_id: str) -> Optional[VacationRecord]:
        return self._vacations.pop(vacation_id, None)

    # ── Holidays ──

    def get_holiday(self, holiday_id: str) -> Optional[HolidayRecord]:
        return self._holidays.get(holiday_id)

    def holidays_for_group(self, group_id: str) -> list[HolidayRecord]:
        return sorted(
            (h for h in self._holidays.values() if h.group_id == group_id),
            key=lambda h: (h.start_date, h.id),
        )

    def save_holiday(self, holiday: HolidayRecord) -> None:
        self._holidays[holiday.id] = holiday

    def delete_holiday(self, holiday_id: str) -> Optional[HolidayRecord]:
        return self._holidays.pop(holiday_id, None)

    # ── Bulk / internal ──

    def count(self) -> int:
        return len(self._vacations) + len(self._holidays)

    def clear(self) -> None:
        self._vacations.clear()
        self._holidays.clear()
