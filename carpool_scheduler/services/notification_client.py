# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Notification client, inter-service communication.
Handles HTTP calls to the notification-service with timeout & fault tolerance.
"""

import httpx

from carpool_scheduler.core.config import settings
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.metrics.prometheus import NOTIFICATIONS_SENT
from carpool_scheduler.models.domain import (
    AssignmentMade,
    CoverageArranged,
    CoverageMissing,
    DebtAdjusted,
    HolidayDeclared,
    ScheduleConflict,
    TrackingPeriodReset,
)

logger = get_logger(__name__)


def describe(event) -> str:
    """Human-readable message for a scheduling event."""
    if isinstance(event, AssignmentMade):
        return (
            f"You are driving {event.slot_id} on {event.slot_date.isoformat()} "
            f"({event.method.value})"
        )
    if isinstance(event, DebtAdjusted):
        return f"Fairness balance adjusted by {event.amount:+.2f}: {event.reason}"
    if isinstance(event, CoverageArranged):
        return (
            f"Backup drivers for {event.start_date.isoformat()} to "
            f"{event.end_date.isoformat()}: {', '.join(event.backup_driver_ids)}"
        )
    if isinstance(event, CoverageMissing):
        return f"No backup driver found for your vacation: {event.reason}"
    if isinstance(event, HolidayDeclared):
        return (
            f"{event.name}: no carpool from {event.start_date.isoformat()} to "
            f"{event.end_date.isoformat()}"
        )
    if isinstance(event, ScheduleConflict):
        return (
            f"Slot {event.slot_id} in week {event.week_start_date.isoformat()} "
            f"has no driver ({event.reason.value})"
        )
    if isinstance(event, TrackingPeriodReset):
        return f"Fairness tracking restarted for {event.families_reset} families"
    raise TypeError(f"Unsupported event: {type(event).__name__}")


class NotificationClient:
    """Fire-and-forget notification sender via notification-service."""

    def notify(self, family_id: str, event) -> None:
        """Send a notification. Failures are logged but never raised."""
        if not settings.NOTIFICATIONS_ENABLED:
            return
        try:
            with httpx.Client(timeout=settings.NOTIFICATION_TIMEOUT) as client:
                resp = client.post(
                    f"{settings.NOTIFICATION_SERVICE_URL}/api/v1/notify",
                    json={
                        "recipient": family_id,
                        "event_type": event.event_type,
                        "message": describe(event),
                        "payload": event.model_dump(mode="json"),
                    },
                )
            NOTIFICATIONS_SENT.labels(event_type=event.event_type).inc()
            logger.info(
                "Notification sent: recipient=%s, event=%s, status=%d",
                family_id,
                event.event_type,
                resp.status_code,
            )
        except Exception as exc:
            logger.warning("Notification failed: %s", exc)
