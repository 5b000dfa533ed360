# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Fairness dashboard, ledger administration and event history.
Thin HTTP layer, delegates ALL logic to FairnessService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from carpool_scheduler.core.dependencies import get_fairness_service
from carpool_scheduler.core.errors import DuplicateRecordingError
from carpool_scheduler.models.domain import FairnessRecord, WeeklyHistoryEntry
from carpool_scheduler.schemas.carpool import (
    FamilyHistoryResponse,
    ManualAdjustmentRequest,
    ResetResponse,
    WeekRecordRequest,
)
from carpool_scheduler.services.fairness_service import FairnessService

router = APIRouter(prefix="/api/v1", tags=["Fairness"])


@router.get("/groups/{group_id}/fairness")
def get_dashboard(
    group_id: str, service: FairnessService = Depends(get_fairness_service)
):
    """Equity scores, group statistics and recommendations."""
    try:
        return service.get_dashboard(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get(
    "/groups/{group_id}/fairness/{family_id}", response_model=FamilyHistoryResponse
)
def get_family_history(
    group_id: str,
    family_id: str,
    service: FairnessService = Depends(get_fairness_service),
):
    try:
        return service.get_family_history(group_id, family_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post(
    "/groups/{group_id}/fairness/weeks",
    status_code=201,
    response_model=dict[str, WeeklyHistoryEntry],
)
def record_week(
    group_id: str,
    payload: WeekRecordRequest,
    service: FairnessService = Depends(get_fairness_service),
):
    """Record a week that was driven outside the generator."""
    try:
        return service.record_week(
            group_id, payload.week_start_date, payload.assignments, payload.force
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicateRecordingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/groups/{group_id}/fairness/adjustments", response_model=FairnessRecord
)
def apply_manual_adjustment(
    group_id: str,
    payload: ManualAdjustmentRequest,
    service: FairnessService = Depends(get_fairness_service),
):
    """Add a signed, audited delta to a family's debt."""
    try:
        return service.apply_manual_adjustment(
            group_id,
            payload.family_id,
            payload.amount,
            payload.reason,
            payload.admin_id,
        )
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/groups/{group_id}/fairness/reset", response_model=ResetResponse)
def reset_tracking_period(
    group_id: str, service: FairnessService = Depends(get_fairness_service)
):
    """Start a new tracking period (school-year boundary)."""
    try:
        return service.reset_tracking_period(group_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/groups/{group_id}/events")
def list_events(
    group_id: str,
    event_type: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    service: FairnessService = Depends(get_fairness_service),
):
    """Audit log of scheduling events, oldest first."""
    try:
        return service.list_events(group_id, event_type=event_type, limit=limit)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))
