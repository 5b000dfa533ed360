# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

from carpool_scheduler.core.config import settings
from carpool_scheduler.repositories.assignment_repository import AssignmentRepository
from carpool_scheduler.repositories.calendar_repository import CalendarRepository
from carpool_scheduler.repositories.fairness_repository import FairnessRepository
from carpool_scheduler.repositories.group_repository import FamilyRepository, GroupRepository
from carpool_scheduler.repositories.history_repository import HistoryRepository
from carpool_scheduler.repositories.preference_repository import PreferenceRepository
from carpool_scheduler.repositories.sql_fairness_repository import (
    SqlFairnessRepository,
    build_engine,
)
from carpool_scheduler.services.calendar_service import CalendarService
from carpool_scheduler.services.fairness_service import FairnessService
from carpool_scheduler.services.group_service import GroupService
from carpool_scheduler.services.notification_client import NotificationClient
from carpool_scheduler.services.scheduling_service import SchedulingService


def _build_fairness_repo():
    if settings.DATABASE_URL:
        return SqlFairnessRepository(build_engine(settings.DATABASE_URL))
    return FairnessRepository()


# ── Singleton repository instances ──
_group_repo = GroupRepository()
_family_repo = FamilyRepository()
_preference_repo = PreferenceRepository()
_assignment_repo = AssignmentRepository()
_calendar_repo = CalendarRepository()
_fairness_repo = _build_fairness_repo()
_history_repo = HistoryRepository()
_notification_client = NotificationClient()

# ── Service instances (with injected dependencies) ──
_group_service = GroupService(
    group_repo=_group_repo,
    family_repo=_family_repo,
    preference_repo=_preference_repo,
)
_scheduling_service = SchedulingService(
    group_repo=_group_repo,
    family_repo=_family_repo,
    preference_repo=_preference_repo,
    assignment_repo=_assignment_repo,
    calendar_repo=_calendar_repo,
    fairness_repo=_fairness_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)
_calendar_service = CalendarService(
    group_repo=_group_repo,
    family_repo=_family_repo,
    preference_repo=_preference_repo,
    assignment_repo=_assignment_repo,
    calendar_repo=_calendar_repo,
    fairness_repo=_fairness_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)
_fairness_service = FairnessService(
    group_repo=_group_repo,
    family_repo=_family_repo,
    calendar_repo=_calendar_repo,
    fairness_repo=_fairness_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)


# ── FastAPI dependency functions ──
def get_group_service() -> GroupService:
    return _group_service


def get_scheduling_service() -> SchedulingService:
    return _scheduling_service


def get_calendar_service() -> CalendarService:
    return _calendar_service


def get_fairness_service() -> FairnessService:
    return _fairness_service


def get_group_repo() -> GroupRepository:
    return _group_repo


def get_family_repo() -> FamilyRepository:
    return _family_repo


def get_preference_repo() -> PreferenceRepository:
    return _preference_repo


def get_assignment_repo() -> AssignmentRepository:
    return _assignment_repo


def get_calendar_repo() -> CalendarRepository:
    return _calendar_repo


def get_fairness_repo():
    return _fairness_repo


def get_history_repo() -> HistoryRepository:
    return _history_repo
