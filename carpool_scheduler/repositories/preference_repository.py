# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Weekly preference submissions.
A new submission replaces the family's previous set for that week wholesale.
"""

from datetime import date
from typing import Optional

from carpool_scheduler.models.domain import WeeklyPreferenceSet


class PreferenceRepository:
    """In-memory preference storage keyed by (group, week) then family."""

    def __init__(self) -> None:
        self._store: dict[tuple[str, date], dict[str, WeeklyPreferenceSet]] = {}

    # ── Read ──

    def load_preferences(
        self, group_id: str, week_start_date: date
    ) -> list[WeeklyPreferenceSet]:
        week = self._store.get((group_id, week_start_date), {})
        return [week[fid] for fid in sorted(week)]

    def get(
        self, group_id: str, week_start_date: date, family_id: str
    ) -> Optional[WeeklyPreferenceSet]:
        return self._store.get((group_id, week_start_date), {}).get(family_id)

    def count(self) -> int:
        return sum(len(week) for week in self._store.values())

    # ── Write ──

    def save(self, preference_set: WeeklyPreferenceSet) -> None:
        key = (preference_set.group_id, preference_set.week_start_date)
        self._store.setdefault(key, {})[preference_set.family_id] = preference_set

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
