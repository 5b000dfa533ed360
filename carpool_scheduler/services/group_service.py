# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Groups, families, and weekly preference submissions.
Coordinates repository writes with validation and metrics.
"""

from datetime import date
from typing import Optional

from carpool_scheduler.core.errors import ValidationError
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.metrics.prometheus import ACTIVE_GROUPS
from carpool_scheduler.models.domain import (
    DayOfWeek,
    Family,
    Group,
    PreferenceLevel,
    TimeSlot,
    WeeklyPreferenceSet,
    utcnow,
)
from carpool_scheduler.repositories.group_repository import FamilyRepository, GroupRepository
from carpool_scheduler.repositories.preference_repository import PreferenceRepository
from carpool_scheduler.services.assignment import check_preference_limits

logger = get_logger(__name__)

DEFAULT_GROUP_ID = "lincoln-morning"


class GroupService:
    """Business logic for group membership and preferences."""

    def __init__(
        self,
        group_repo: GroupRepository,
        family_repo: FamilyRepository,
        preference_repo: PreferenceRepository,
    ) -> None:
        self._groups = group_repo
        self._families = family_repo
        self._preferences = preference_repo

    # ── Groups ──

    def list_groups(self) -> list[Group]:
        return self._groups.get_all()

    def get_group(self, group_id: str) -> Group:
        """Raises KeyError if the group is unknown."""
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"Group '{group_id}' not found")
        return group

    def upsert_group(self, group: Group) -> Group:
        self._groups.save(group)
        for family_id in group.member_ids:
            family = self._families.get(family_id)
            if family is not None and group.id not in family.group_ids:
                self._families.save(family.model_copy(
                    update={"group_ids": family.group_ids + [group.id]}
                ))
        ACTIVE_GROUPS.set(self._groups.count())
        logger.info(
            "Group saved: group=%s, slots=%d, members=%d",
            group.id, len(group.template), len(group.member_ids),
        )
        return group

    # ── Families ──

    def get_family(self, family_id: str) -> Family:
        family = self._families.get(family_id)
        if family is None:
            raise KeyError(f"Family '{family_id}' not found")
        return family

    def list_families(self, group_id: Optional[str] = None) -> list[Family]:
        if group_id is None:
            return self._families.get_all()
        group = self.get_group(group_id)
        members = self._families.get_many(group.member_ids)
        return [members[fid] for fid in sorted(members)]

    def upsert_family(self, family: Family) -> Family:
        existing = self._families.get(family.id)
        if existing is not None and not family.group_ids:
            family = family.model_copy(update={"group_ids": existing.group_ids})
        self._families.save(family)
        logger.info(
            "Family saved: family=%s, children=%d, active=%s",
            family.id, family.children_count, family.active,
        )
        return family

    # ── Preferences ──

    def submit_preferences(
        self,
        group_id: str,
        week_start_date: date,
        family_id: str,
        preferences: dict[str, PreferenceLevel],
    ) -> WeeklyPreferenceSet:
        """Replace a family's preferences for one week.

        Raises KeyError for unknown group or family and ValidationError when
        the family is not a member, a slot is unknown, or a limit is exceeded.
        """
        group = self.get_group(group_id)
        self.get_family(family_id)
        if family_id not in group.member_ids:
            raise ValidationError(
                f"Family '{family_id}' is not a member of group '{group_id}'"
            )
        preference_set = WeeklyPreferenceSet(
            family_id=family_id,
            group_id=group_id,
            week_start_date=week_start_date,
            preferences=preferences,
            submitted_at=utcnow(),
        )
        check_preference_limits(preference_set, group.template)
        self._preferences.save(preference_set)
        logger.info(
            "Preferences submitted: group=%s, week=%s, family=%s, marked=%d",
            group_id, week_start_date, family_id, len(preferences),
            extra={
                "group_id": group_id,
                "family_id": family_id,
                "week_start_date": week_start_date,
            },
        )
        return preference_set

    def get_preferences(
        self, group_id: str, week_start_date: date, family_id: str
    ) -> WeeklyPreferenceSet:
        """Unsubmitted weeks read back as all-neutral."""
        self.get_group(group_id)
        return self._preferences.get(group_id, week_start_date, family_id) or (
            WeeklyPreferenceSet(
                family_id=family_id, group_id=group_id, week_start_date=week_start_date
            )
        )

    def list_preferences(
        self, group_id: str, week_start_date: date
    ) -> list[WeeklyPreferenceSet]:
        self.get_group(group_id)
        return self._preferences.load_preferences(group_id, week_start_date)

    # ── Seeding ──

    def seed_defaults(self) -> None:
        """Load a demo group so a fresh instance has something to schedule."""
        if self._groups.exists(DEFAULT_GROUP_ID):
            return
        for family in (
            Family(id="fam-a", name="Anderson", children_count=2),
            Family(id="fam-b", name="Baker", children_count=1),
            Family(id="fam-c", name="Chen", children_count=2),
        ):
            self.upsert_family(family)
        self.upsert_group(Group(
            id=DEFAULT_GROUP_ID,
            name="Lincoln Elementary morning run",
            admin_family_id="fam-a",
            template=[
                TimeSlot(day_of_week=day)
                for day in (
                    DayOfWeek.MONDAY,
                    DayOfWeek.TUESDAY,
                    DayOfWeek.WEDNESDAY,
                    DayOfWeek.THURSDAY,
                    DayOfWeek.FRIDAY,
                )
            ],
            member_ids=["fam-a", "fam-b", "fam-c"],
        ))
        logger.info("Default group seeded: group=%s", DEFAULT_GROUP_ID)
