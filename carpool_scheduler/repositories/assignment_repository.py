# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Generated weekly assignments.
"""

from datetime import date
from typing import Optional

from carpool_scheduler.models.domain import WeeklyAssignment


class AssignmentRepository:
    """In-memory assignment storage keyed by (group, week)."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, date], list[WeeklyAssignment]] = {}

    # ── Read ──

    def get_assignments(
        self, group_id: str, week_start_date: date
    ) -> Optional[list[WeeklyAssignment]]:
        assignments = self._store.get((group_id, week_start_date))
        return list(assignments) if assignments is not None else None

    def exists(self, group_id: str, week_start_date: date) -> bool:
        return (group_id, week_start_date) in self._store

    def weeks_for_group(self, group_id: str) -> list[date]:
        return sorted(week for gid, week in self._store if gid == group_id)

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save_assignments(
        self,
        group_id: str,
        week_start_date: date,
        assignments: list[WeeklyAssignment],
    ) -> None:
        self._store[(group_id, week_start_date)] = list(assignments)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
