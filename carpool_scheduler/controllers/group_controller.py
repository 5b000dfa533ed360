# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Groups, families and weekly preferences.
Thin HTTP layer, delegates ALL logic to GroupService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from carpool_scheduler.core.dependencies import get_group_service
from carpool_scheduler.models.domain import Family, Group, WeeklyPreferenceSet
from carpool_scheduler.schemas.carpool import (
    FamilyUpsertRequest,
    GroupUpsertRequest,
    PreferenceSubmitRequest,
)
from carpool_scheduler.services.group_service import GroupService

router = APIRouter(prefix="/api/v1", tags=["Groups"])


# ── Groups ──

@router.get("/groups", response_model=list[Group])
def list_groups(service: GroupService = Depends(get_group_service)):
    """List all carpool groups."""
    return service.list_groups()


@router.put("/groups/{group_id}", response_model=Group)
def upsert_group(
    group_id: str,
    payload: GroupUpsertRequest,
    service: GroupService = Depends(get_group_service),
):
    """Create or replace a group and its weekly slot template."""
    try:
        group = Group(id=group_id, **payload.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return service.upsert_group(group)


@router.get("/groups/{group_id}", response_model=Group)
def get_group(group_id: str, service: GroupService = Depends(get_group_service)):
    try:
        return service.get_group(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/groups/{group_id}/families", response_model=list[Family])
def list_group_families(
    group_id: str, service: GroupService = Depends(get_group_service)
):
    """Member families of a group."""
    try:
        return service.list_families(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Families ──

@router.put("/families/{family_id}", response_model=Family)
def upsert_family(
    family_id: str,
    payload: FamilyUpsertRequest,
    service: GroupService = Depends(get_group_service),
):
    """Create or replace a family. Group membership is managed on the group."""
    return service.upsert_family(Family(id=family_id, **payload.model_dump()))


@router.get("/families/{family_id}", response_model=Family)
def get_family(family_id: str, service: GroupService = Depends(get_group_service)):
    try:
        return service.get_family(family_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Preferences ──

@router.put(
    "/groups/{group_id}/preferences/{week_start_date}/{family_id}",
    response_model=WeeklyPreferenceSet,
)
def submit_preferences(
    group_id: str,
    week_start_date: date,
    family_id: str,
    payload: PreferenceSubmitRequest,
    service: GroupService = Depends(get_group_service),
):
    """Replace a family's preferences for one week."""
    try:
        return service.submit_preferences(
            group_id, week_start_date, family_id, payload.preferences
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/groups/{group_id}/preferences/{week_start_date}/{family_id}",
    response_model=WeeklyPreferenceSet,
)
def get_preferences(
    group_id: str,
    week_start_date: date,
    family_id: str,
    service: GroupService = Depends(get_group_service),
):
    try:
        return service.get_preferences(group_id, week_start_date, family_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/groups/{group_id}/preferences/{week_start_date}",
    response_model=list[WeeklyPreferenceSet],
)
def list_preferences(
    group_id: str,
    week_start_date: date,
    service: GroupService = Depends(get_group_service),
):
    """All submitted preference sets for one week."""
    try:
        return service.list_preferences(group_id, week_start_date)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
