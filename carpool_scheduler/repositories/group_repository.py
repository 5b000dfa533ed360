# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Group and family reference data.
Owned by group management upstream; the scheduler reads templates and
membership. NO business rules here, pure CRUD.
"""

from typing import Optional

from carpool_scheduler.models.domain import Family, Group, TimeSlot


class GroupRepository:
    """In-memory carpool group storage."""

    def __init__(self) -> None:
        self._store: dict[str, Group] = {}

    # ── Read ──

    def get_all(self) -> list[Group]:
        return [self._store[k] for k in sorted(self._store)]

    def get(self, group_id: str) -> Optional[Group]:
        return self._store.get(group_id)

    def load_group_template(self, group_id: str) -> list[TimeSlot]:
        group = self._store.get(group_id)
        return list(group.template) if group is not None else []

    def exists(self, group_id: str) -> bool:
        return group_id in self._store

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, group: Group) -> None:
        self._store[group.id] = group

    def delete(self, group_id: str) -> Optional[Group]:
        return self._store.pop(group_id, None)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()


class FamilyRepository:
    """In-memory family storage."""

    def __init__(self) -> None:
        self._store: dict[str, Family] = {}

    def get(self, family_id: str) -> Optional[Family]:
        return self._store.get(family_id)

    def get_many(self, family_ids: list[str]) -> dict[str, Family]:
        return {fid: self._store[fid] for fid in family_ids if fid in self._store}

    def get_all(self) -> list[Family]:
        return [self._store[k] for k in sorted(self._store)]

    def exists(self, family_id: str) -> bool:
        return family_id in self._store

    def count(self) -> int:
        return len(self._store)

    def save(self, family: Family) -> None:
        self._store[family.id] = family

    def clear(self) -> None:
        self._store.clear()
