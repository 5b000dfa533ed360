# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Fairness ledger.

Tracks per family, per group how much driving each family has done against
its fair share. Positive debt means the family drove more than its share,
negative means it is owed driving. The ledger is built per request around an
injected repository and holds no state of its own.
"""

from datetime import date
from typing import Any, Iterable, Mapping, Optional

from carpool_scheduler.core.config import settings
from carpool_scheduler.core.errors import DuplicateRecordingError
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.metrics.prometheus import (
    DUPLICATE_RECORDINGS,
    GROUP_EQUITY_SCORE,
    LEDGER_RESETS,
)
from carpool_scheduler.models.domain import (
    AssignmentStatus,
    Family,
    FairnessRecord,
    ManualAdjustment,
    WeeklyAssignment,
    WeeklyHistoryEntry,
    utcnow,
)

logger = get_logger(__name__)

TREND_STABLE_BAND = 0.1


def equity_score(record: FairnessRecord) -> int:
    """0-100, one trip per child per week counts as fully fair."""
    if record.total_weeks == 0:
        return 100
    average = record.total_trips / record.total_weeks
    expected = max(record.children_count, 1)
    base = min(100.0, average / expected * 100)
    return max(0, round(base - abs(record.fairness_debt) * 5))


def trend_direction(history: list[WeeklyHistoryEntry]) -> str:
    """Compare the last three weeks' mean debt change with the three before."""
    if len(history) < 3:
        return "insufficient_data"
    recent = history[-3:]
    older = history[-6:-3]
    if not older:
        return "insufficient_data"
    recent_avg = sum(e.debt_change for e in recent) / len(recent)
    older_avg = sum(e.debt_change for e in older) / len(older)
    difference = recent_avg - older_avg
    if abs(difference) < TREND_STABLE_BAND:
        return "stable"
    return "improving" if difference < 0 else "worsening"


def fair_shares(
    slots: int,
    participants: Mapping[str, Family],
    excused: Mapping[str, int],
    schedulable_slots: int,
) -> dict[str, float]:
    """Split the week's schedulable slots across participants by weight.

    weight = children_count * (1 - excused / schedulable). Shares always sum
    to slots, unfilled ones included, and a family excused for every slot
    gets zero.
    """
    weights: dict[str, float] = {}
    for family_id, family in participants.items():
        if not family.can_drive or schedulable_slots == 0:
            weights[family_id] = 0.0
            continue
        covered = min(excused.get(family_id, 0), schedulable_slots)
        weights[family_id] = family.children_count * (1 - covered / schedulable_slots)

    total = sum(weights.values())
    if total <= 0:
        return {family_id: 0.0 for family_id in participants}
    return {
        family_id: slots * weight / total
        for family_id, weight in weights.items()
    }


def _revert(record: FairnessRecord, entry: WeeklyHistoryEntry) -> None:
    record.total_trips -= entry.assigned_trips
    record.total_weeks -= 1
    record.fairness_debt -= entry.debt_change
    record.weekly_history = [
        e for e in record.weekly_history
        if e.week_start_date != entry.week_start_date
    ]


class FairnessLedger:
    """Reads and writes fairness records for one repository."""

    def __init__(self, repository) -> None:
        self._repo = repository

    # ── Read ──

    def get_record(self, group_id: str, family_id: str) -> Optional[FairnessRecord]:
        return self._repo.get(group_id, family_id)

    def is_recorded(self, group_id: str, week_start_date: date) -> bool:
        return any(
            r.history_for(week_start_date) is not None
            for r in self._repo.load_all(group_id)
        )

    def snapshot(
        self, group_id: str, exclude_week: Optional[date] = None
    ) -> dict[str, float]:
        """Family id -> debt, optionally as if exclude_week had never been recorded."""
        debts: dict[str, float] = {}
        for record in self._repo.load_all(group_id):
            debt = record.fairness_debt
            if exclude_week is not None:
                entry = record.history_for(exclude_week)
                if entry is not None:
                    debt -= entry.debt_change
            debts[record.family_id] = debt
        return debts

    # ── Weekly recording ──

    def record_week(
        self,
        group_id: str,
        week_start_date: date,
        assignments: Iterable[WeeklyAssignment],
        families: Mapping[str, Family],
        excused_slots: Optional[Mapping[str, int]] = None,
        force: bool = False,
    ) -> dict[str, WeeklyHistoryEntry]:
        """Apply one week of assignments to the ledger.

        Participants are the active families plus anyone who drove. Raises
        DuplicateRecordingError if the week is already recorded and force is
        false; with force the earlier entry is reverted first.
        """
        assignments = list(assignments)
        excused = dict(excused_slots or {})
        schedulable = [a for a in assignments if a.status == AssignmentStatus.SCHEDULED]
        filled = [a for a in schedulable if a.family_id is not None]

        trips: dict[str, int] = {}
        for assignment in filled:
            trips[assignment.family_id] = trips.get(assignment.family_id, 0) + 1

        participants: dict[str, Family] = {
            fid: f for fid, f in families.items() if f.active
        }
        for family_id in trips:
            if family_id not in participants:
                participants[family_id] = families.get(family_id) or Family(id=family_id)

        shares = fair_shares(len(schedulable), participants, excused, len(schedulable))
        if filled and not any(shares.values()):
            # nobody carried weight; drivers absorb exactly what they drove
            shares = {fid: float(trips.get(fid, 0)) for fid in participants}
        total_children = sum(f.children_count for f in participants.values())
        now = utcnow()

        with self._repo.lock(group_id):
            existing = {r.family_id: r for r in self._repo.load_all(group_id)}
            recorded = [r for r in existing.values() if r.history_for(week_start_date)]
            if recorded and not force:
                DUPLICATE_RECORDINGS.inc()
                raise DuplicateRecordingError(group_id, week_start_date)
            for record in recorded:
                _revert(record, record.history_for(week_start_date))
                record.last_updated = now

            entries: dict[str, WeeklyHistoryEntry] = {}
            for family_id in sorted(participants):
                family = participants[family_id]
                record = existing.get(family_id)
                if record is None:
                    record = FairnessRecord(
                        family_id=family_id,
                        group_id=group_id,
                        tracking_period_start=now,
                    )
                    existing[family_id] = record
                assigned = trips.get(family_id, 0)
                share = shares[family_id]
                entry = WeeklyHistoryEntry(
                    week_start_date=week_start_date,
                    assigned_trips=assigned,
                    fair_share=share,
                    debt_change=assigned - share,
                    children_count_at_recording=family.children_count,
                    total_children_at_recording=total_children,
                    excused_slots=excused.get(family_id, 0),
                    recorded_at=now,
                )
                record.children_count = family.children_count
                record.total_trips += assigned
                record.total_weeks += 1
                record.fairness_debt += entry.debt_change
                record.weekly_history = sorted(
                    record.weekly_history + [entry],
                    key=lambda e: e.week_start_date,
                )
                record.last_updated = now
                entries[family_id] = entry

            self._repo.save_all(group_id, list(existing.values()))

        logger.info(
            "Week recorded: group=%s, week=%s, filled=%d, families=%d, forced=%s",
            group_id, week_start_date, len(filled), len(entries), bool(recorded),
            extra={"group_id": group_id, "week_start_date": week_start_date},
        )
        return entries

    # ── Dashboard ──

    def get_dashboard(
        self, group_id: str, families: Mapping[str, Family]
    ) -> dict[str, Any]:
        records = {r.family_id: r for r in self._repo.load_all(group_id)}
        for family_id, family in families.items():
            if family_id not in records:
                records[family_id] = FairnessRecord(
                    family_id=family_id,
                    group_id=group_id,
                    children_count=family.children_count,
                )

        rows = []
        for family_id in sorted(records):
            record = records[family_id]
            family = families.get(family_id)
            rows.append({
                "family_id": family_id,
                "name": family.name if family else "",
                "active": family.active if family else False,
                "children_count": record.children_count,
                "total_trips": record.total_trips,
                "total_weeks": record.total_weeks,
                "fairness_debt": round(record.fairness_debt, 4),
                "vacation_adjustments": record.vacation_adjustments,
                "equity_score": equity_score(record),
            })

        active = [r for r in rows if r["active"]]
        debts = [r["fairness_debt"] for r in active]
        debt_range = (max(debts) - min(debts)) if debts else 0.0
        group_score = round(max(0.0, 100 - debt_range * 10))
        total_trips = sum(r["total_trips"] for r in rows)
        total_children = sum(r["children_count"] for r in active)
        GROUP_EQUITY_SCORE.labels(group=group_id).set(group_score)

        return {
            "group_id": group_id,
            "families": rows,
            "group_stats": {
                "total_trips": total_trips,
                "total_children": total_children,
                "average_trips_per_child": (
                    round(total_trips / total_children, 1) if total_children else 0.0
                ),
                "equity_score": group_score,
                "debt_range": round(debt_range, 1),
            },
            "recommendations": self._recommendations(active),
            "messages": self._messages(active, debt_range),
        }

    @staticmethod
    def _recommendations(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Flagged families, furthest from zero debt first. Advisory only."""
        threshold = settings.DEBT_RECOMMENDATION_THRESHOLD
        flagged = []
        for row in rows:
            debt = row["fairness_debt"]
            if debt > threshold:
                action = "deprioritize"
            elif debt < -threshold:
                action = "prioritize"
            else:
                continue
            flagged.append({
                "family_id": row["family_id"],
                "action": action,
                "fairness_debt": debt,
            })
        flagged.sort(key=lambda r: (-abs(r["fairness_debt"]), r["family_id"]))
        for rank, item in enumerate(flagged, start=1):
            item["rank"] = rank
        return flagged

    @staticmethod
    def _messages(rows: list[dict[str, Any]], debt_range: float) -> list[str]:
        threshold = settings.DEBT_RECOMMENDATION_THRESHOLD
        messages = []
        if debt_range > settings.HIGH_DISPARITY_RANGE:
            messages.append(
                "High disparity detected. Consider manual adjustments for "
                "families far from their fair share."
            )
        owed = [r["family_id"] for r in rows if r["fairness_debt"] < -threshold]
        if owed:
            messages.append(
                f"Prioritize {', '.join(owed)} for upcoming driving assignments."
            )
        ahead = [r["family_id"] for r in rows if r["fairness_debt"] > threshold]
        if ahead:
            messages.append(
                f"Consider reducing assignments for {', '.join(ahead)} in upcoming weeks."
            )
        if not messages:
            messages.append(
                "Fairness distribution is well-balanced. "
                "Continue with current scheduling approach."
            )
        return messages

    def get_family_history(self, group_id: str, family_id: str) -> dict[str, Any]:
        record = self._repo.get(group_id, family_id) or FairnessRecord(
            family_id=family_id, group_id=group_id
        )
        recent = record.weekly_history[-settings.TREND_WINDOW_WEEKS:]
        direction = trend_direction(recent)
        return {
            "record": record,
            "trend": {
                "direction": direction,
                "recent_average_trips": (
                    sum(e.assigned_trips for e in recent) / len(recent) if recent else 0.0
                ),
                "equity_improving": direction == "improving",
                "weeks_considered": len(recent),
            },
            "equity_score": equity_score(record),
        }

    # ── Adjustments ──

    def apply_manual_adjustment(
        self,
        group_id: str,
        family_id: str,
        amount: float,
        reason: str,
        admin_id: Optional[str] = None,
    ) -> FairnessRecord:
        now = utcnow()
        with self._repo.lock(group_id):
            record = self._repo.get(group_id, family_id) or FairnessRecord(
                family_id=family_id, group_id=group_id, tracking_period_start=now
            )
            record.fairness_debt += amount
            record.manual_adjustments.append(ManualAdjustment(
                amount=amount, reason=reason, admin_id=admin_id, timestamp=now,
            ))
            record.last_updated = now
            self._repo.save_all(group_id, [record])
        logger.info(
            "Manual adjustment: group=%s, family=%s, amount=%+.2f, admin=%s",
            group_id, family_id, amount, admin_id,
            extra={"group_id": group_id, "family_id": family_id},
        )
        return record

    def add_vacation_days(
        self,
        group_id: str,
        family_id: str,
        days: int,
        children_count: int = 1,
    ) -> FairnessRecord:
        now = utcnow()
        with self._repo.lock(group_id):
            record = self._repo.get(group_id, family_id) or FairnessRecord(
                family_id=family_id,
                group_id=group_id,
                children_count=children_count,
                tracking_period_start=now,
            )
            record.vacation_adjustments = max(0, record.vacation_adjustments + days)
            record.last_updated = now
            self._repo.save_all(group_id, [record])
        return record

    def reset(self, group_id: str) -> list[FairnessRecord]:
        """Start a new tracking period. Family identities survive."""
        now = utcnow()
        with self._repo.lock(group_id):
            records = self._repo.load_all(group_id)
            for record in records:
                record.total_trips = 0
                record.total_weeks = 0
                record.fairness_debt = 0.0
                record.weekly_history = []
                record.manual_adjustments = []
                record.vacation_adjustments = 0
                record.tracking_period_start = now
                record.last_updated = now
            self._repo.save_all(group_id, records)
        LEDGER_RESETS.inc()
        logger.info(
            "Tracking period reset: group=%s, families=%d", group_id, len(records),
            extra={"group_id": group_id},
        )
        return records
