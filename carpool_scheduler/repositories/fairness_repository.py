# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Fairness ledger storage.

Records are copied in and out so callers never hold a live reference, and a
group's records are swapped in a single assignment on save: a reader sees
either the old or the new state of every family, never a mix. `lock()` hands
out one lock per group for serialising ledger writes.
"""

import threading
from typing import Optional

from carpool_scheduler.models.domain import FairnessRecord


class _GroupLocks:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get(self, group_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(group_id, threading.Lock())


class FairnessRepository:
    """In-memory fairness records keyed by group, then family."""

    def __init__(self) -> None:
        self._store: dict[str, dict[str, FairnessRecord]] = {}
        self._locks = _GroupLocks()

    # ── Read ──

    def load_all(self, group_id: str) -> list[FairnessRecord]:
        records = self._store.get(group_id, {})
        return [records[fid].model_copy(deep=True) for fid in sorted(records)]

    def get(self, group_id: str, family_id: str) -> Optional[FairnessRecord]:
        record = self._store.get(group_id, {}).get(family_id)
        return record.model_copy(deep=True) if record is not None else None

    def count(self) -> int:
        return sum(len(records) for records in self._store.values())

    # ── Write ──

    def save_all(self, group_id: str, records: list[FairnessRecord]) -> None:
        updated = dict(self._store.get(group_id, {}))
        for record in records:
            updated[record.family_id] = record.model_copy(deep=True)
        self._store[group_id] = updated

    def lock(self, group_id: str) -> threading.Lock:
        return self._locks.get(group_id)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
