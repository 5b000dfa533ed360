# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Data-access layer for fairness records backed by SQLAlchemy."""
import threading
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.models.domain import FairnessRecord

logger = get_logger(__name__)

SCHEMA = """
    CREATE TABLE IF NOT EXISTS fairness_records (
        group_id   VARCHAR(255) NOT NULL,
        family_id  VARCHAR(255) NOT NULL,
        payload    TEXT         NOT NULL,
        updated_at VARCHAR(64)  NOT NULL,
        PRIMARY KEY (group_id, family_id)
    )
"""


def build_engine(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True)


class SqlFairnessRepository:
    """One row per (group, family); the record travels as a JSON payload."""

    def __init__(self, engine: Engine):
        self._engine = engine
        self._guard = threading.Lock()
        self._locks: dict = {}

    def ensure_schema(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text(SCHEMA))

    # ── Read ───────────────────────────────────────────────────────────

    def load_all(self, group_id: str) -> List[FairnessRecord]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                text("""
                    SELECT payload FROM fairness_records
                    WHERE group_id = :group_id
                    ORDER BY family_id
                """),
                {"group_id": group_id},
            ).fetchall()
        return [FairnessRecord.model_validate_json(row[0]) for row in rows]

    def get(self, group_id: str, family_id: str) -> Optional[FairnessRecord]:
        with self._engine.connect() as conn:
            row = conn.execute(
                text("""
                    SELECT payload FROM fairness_records
                    WHERE group_id = :group_id AND family_id = :family_id
                """),
                {"group_id": group_id, "family_id": family_id},
            ).fetchone()
        return FairnessRecord.model_validate_json(row[0]) if row else None

    def count(self) -> int:
        with self._engine.connect() as conn:
            return conn.execute(text("SELECT COUNT(*) FROM fairness_records")).scalar() or 0

    # ── Write ──────────────────────────────────────────────────────────

    def save_all(self, group_id: str, records: List[FairnessRecord]) -> None:
        """Replace every given record inside one transaction."""
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._engine.begin() as conn:
            for record in records:
                params = {"group_id": group_id, "family_id": record.family_id}
                conn.execute(
                    text("""
                        DELETE FROM fairness_records
                        WHERE group_id = :group_id AND family_id = :family_id
                    """),
                    params,
                )
                conn.execute(
                    text("""
                        INSERT INTO fairness_records (group_id, family_id, payload, updated_at)
                        VALUES (:group_id, :family_id, :payload, :updated_at)
                    """),
                    {**params, "payload": record.model_dump_json(), "updated_at": now_iso},
                )
        logger.info("Fairness records saved: group=%s, families=%d", group_id, len(records))

    def lock(self, group_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(group_id, threading.Lock())

    def clear(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(text("DELETE FROM fairness_records"))
