# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Vacations, backup coverage and school holidays.
Thin HTTP layer, delegates ALL logic to CalendarService.
"""

from fastapi import APIRouter, Depends, HTTPException

from carpool_scheduler.core.dependencies import get_calendar_service
from carpool_scheduler.models.domain import HolidayRecord, VacationRecord
from carpool_scheduler.schemas.carpool import (
    CoverageResponse,
    HolidayCreateRequest,
    HolidayResponse,
    VacationCreateRequest,
    VacationResponse,
)
from carpool_scheduler.services.calendar_service import CalendarService

router = APIRouter(prefix="/api/v1", tags=["Calendar"])


# ── Vacations ──

@router.post(
    "/groups/{group_id}/vacations", status_code=201, response_model=VacationResponse
)
def record_vacation(
    group_id: str,
    payload: VacationCreateRequest,
    service: CalendarService = Depends(get_calendar_service),
):
    """Record a family vacation; backups are arranged when coverage is needed."""
    try:
        return service.record_vacation(
            VacationRecord(group_id=group_id, **payload.model_dump())
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/groups/{group_id}/vacations", response_model=list[VacationRecord])
def list_vacations(
    group_id: str, service: CalendarService = Depends(get_calendar_service)
):
    try:
        return service.list_vacations(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/groups/{group_id}/vacations/{vacation_id}/coverage",
    response_model=CoverageResponse,
)
def arrange_coverage(
    group_id: str,
    vacation_id: str,
    service: CalendarService = Depends(get_calendar_service),
):
    """Re-run backup selection for a stored vacation."""
    try:
        return service.arrange_coverage(group_id, vacation_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/groups/{group_id}/vacations/{vacation_id}", response_model=VacationRecord)
def delete_vacation(
    group_id: str,
    vacation_id: str,
    service: CalendarService = Depends(get_calendar_service),
):
    try:
        return service.delete_vacation(group_id, vacation_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ── Holidays ──

@router.post(
    "/groups/{group_id}/holidays", status_code=201, response_model=HolidayResponse
)
def record_holiday(
    group_id: str,
    payload: HolidayCreateRequest,
    service: CalendarService = Depends(get_calendar_service),
):
    """Record a school holiday and cancel assignments that fall on it."""
    try:
        return service.record_holiday(
            HolidayRecord(group_id=group_id, **payload.model_dump())
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/groups/{group_id}/holidays", response_model=list[HolidayRecord])
def list_holidays(
    group_id: str, service: CalendarService = Depends(get_calendar_service)
):
    try:
        return service.list_holidays(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/groups/{group_id}/holidays/{holiday_id}", response_model=HolidayRecord)
def delete_holiday(
    group_id: str,
    holiday_id: str,
    service: CalendarService = Depends(get_calendar_service),
):
    try:
        return service.delete_holiday(group_id, holiday_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
