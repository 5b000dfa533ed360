# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Audit history (event log) data access.
Bounded append-only log of typed scheduling events.
"""

import uuid
from typing import Any, Optional

from carpool_scheduler.core.config import settings
from carpool_scheduler.models.domain import CarpoolEvent


class HistoryRepository:
    """In-memory event log (bounded ring buffer)."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    # ── Read ──

    def get_all(
        self,
        group_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        effective_limit = limit or settings.DEFAULT_HISTORY_LIMIT
        result = list(self._events)
        if group_id:
            result = [e for e in result if e["group_id"] == group_id]
        if event_type:
            result = [e for e in result if e["event_type"] == event_type]
        return result[-effective_limit:]

    def count(self) -> int:
        return len(self._events)

    # ── Write ──

    def record(self, event: CarpoolEvent) -> dict[str, Any]:
        """Append an event to the audit log, trimming oldest if over max."""
        entry: dict[str, Any] = {
            "event_id": str(uuid.uuid4()),
            **event.model_dump(mode="json"),
        }
        self._events.append(entry)
        if len(self._events) > settings.MAX_HISTORY_SIZE:
            del self._events[: len(self._events) - settings.MAX_HISTORY_SIZE]
        return entry

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._events.clear()
