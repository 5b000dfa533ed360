# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Carpool Scheduler
=================
Collects weekly driving preferences from the families of a carpool group,
assigns one driver per time slot, keeps a running fairness ledger of who
drove how often, and moves duty around family vacations and school holidays.

Assignment precedence per slot:
    excluded (vacation / unavailable / inactive) ─► preferable
    ─► less_preferable ─► neutral ─► unfilled conflict
Ties go to the lowest fairness debt, then to the lowest family id.

Port: 8005
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carpool_scheduler.controllers import (
    calendar_controller,
    fairness_controller,
    group_controller,
    schedule_controller,
    system_controller,
)
from carpool_scheduler.core.config import settings
from carpool_scheduler.core.dependencies import get_fairness_repo, get_group_service
from carpool_scheduler.core.logging import get_logger
from carpool_scheduler.middleware import MetricsMiddleware, RequestIDMiddleware

logger = get_logger("carpool-scheduler")


@asynccontextmanager
async def lifespan(application: FastAPI):
    ensure_schema = getattr(get_fairness_repo(), "ensure_schema", None)
    if ensure_schema is not None:
        ensure_schema()
        logger.info("Fairness table ready")
    if settings.SEED_DEFAULT_GROUPS:
        get_group_service().seed_defaults()
    logger.info(
        "Service started: %s v%s on port %d",
        settings.SERVICE_NAME, settings.SERVICE_VERSION, settings.SERVICE_PORT,
    )
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="Carpool Scheduler",
    description="Fair weekly driver assignment for school carpool groups.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestIDMiddleware)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "detail": str(exc)},
    )


app.include_router(system_controller.router)
app.include_router(group_controller.router)
app.include_router(schedule_controller.router)
app.include_router(calendar_controller.router)
app.include_router(fairness_controller.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.SERVICE_PORT, log_level="info")
