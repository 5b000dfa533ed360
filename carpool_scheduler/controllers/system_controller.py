# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: System endpoints, health, readiness, metrics.
Pure HTTP layer, no business logic.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from carpool_scheduler.core.config import settings
from carpool_scheduler.core.dependencies import (
    get_fairness_repo,
    get_family_repo,
    get_group_repo,
    get_history_repo,
)

router = APIRouter(tags=["System"])


@router.get("/health")
def health_check():
    """Liveness probe for Docker and orchestration."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "groups_count": get_group_repo().count(),
        "families_count": get_family_repo().count(),
        "events_recorded": get_history_repo().count(),
    }


@router.get("/health/ready")
def readiness_check():
    """Readiness probe: the fairness store must answer."""
    try:
        records = get_fairness_repo().count()
    except Exception as exc:
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "error": type(exc).__name__},
        )
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "groups_loaded": get_group_repo().count() > 0,
        "fairness_records": records,
    }


@router.get("/metrics")
def prometheus_metrics():
    """Expose Prometheus metrics in OpenMetrics format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
