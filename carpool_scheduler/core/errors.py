# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain errors raised by the scheduling core.
Controllers translate them to HTTP status codes.
"""

from datetime import date


class CarpoolError(Exception):
    """Base class for scheduling core errors."""


class ValidationError(CarpoolError, ValueError):
    """Preference submission breaks a business rule (limits, unknown slots)."""


class DuplicateRecordingError(CarpoolError):
    """A week was already recorded in the fairness ledger."""

    def __init__(self, group_id: str, week_start_date: date) -> None:
        self.group_id = group_id
        self.week_start_date = week_start_date
        super().__init__(
            f"Week {week_start_date.isoformat()} already recorded for group "
            f"'{group_id}'; pass force=True to overwrite"
        )


class ScheduleAlreadyGeneratedError(CarpoolError):
    """Assignments exist for the week and regeneration was not forced."""

    def __init__(self, group_id: str, week_start_date: date) -> None:
        self.group_id = group_id
        self.week_start_date = week_start_date
        super().__init__(
            f"Schedule for week {week_start_date.isoformat()} already generated "
            f"for group '{group_id}'; set force_regenerate to replace it"
        )
