# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Weekly schedule generation and lookup.
Thin HTTP layer, delegates ALL logic to SchedulingService.
"""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException

from carpool_scheduler.core.dependencies import get_scheduling_service
from carpool_scheduler.core.errors import DuplicateRecordingError, ScheduleAlreadyGeneratedError
from carpool_scheduler.models.domain import WeeklyAssignment
from carpool_scheduler.schemas.carpool import ScheduleGenerateRequest, ScheduleResponse
from carpool_scheduler.services.scheduling_service import SchedulingService

router = APIRouter(prefix="/api/v1", tags=["Schedules"])


@router.post(
    "/groups/{group_id}/schedules", status_code=201, response_model=ScheduleResponse
)
def generate_schedule(
    group_id: str,
    payload: ScheduleGenerateRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Assign drivers to every slot of a week and record it for fairness."""
    try:
        return service.generate_schedule(
            group_id, payload.week_start_date, payload.force_regenerate
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ScheduleAlreadyGeneratedError, DuplicateRecordingError) as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/groups/{group_id}/schedules", response_model=list[date])
def list_schedule_weeks(
    group_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Weeks with a generated schedule."""
    try:
        return service.list_weeks(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/groups/{group_id}/schedules/{week_start_date}",
    response_model=list[WeeklyAssignment],
)
def get_schedule(
    group_id: str,
    week_start_date: date,
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        return service.get_schedule(group_id, week_start_date)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
