"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from anchor.api.schemas.jobs import JobRunRequest, JobRunResponse
from anchor.core.config import settings
from anchor.db.deps import get_db
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services.calendar.base import CalendarProvider
from anchor.services.calendar.factory import get_calendar_provider
from anchor.services.calendar.sync import CalendarSyncCoordinator
from anchor.services.job_runner import run_reconcile_sweep, run_status_tick

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "reconcile_interval_minutes": settings.reconcile_interval_minutes,
                "status_tick_seconds": settings.status_tick_seconds,
            },
            "calendar_sync_enabled": settings.calendar_sync_enabled,
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
    calendar_provider: CalendarProvider = Depends(get_calendar_provider),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "request_id": request_id}
    start = perf_counter()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        if payload.job == "reconcile":
            result = run_reconcile_sweep(db, coordinator=CalendarSyncCoordinator(db, calendar_provider))
            response = JobRunResponse(
                job=payload.job,
                checked=result.checked,
                cleared=result.cleared,
                request_id=request_id or "",
            )
        else:
            tick = run_status_tick(db)
            response = JobRunResponse(job=payload.job, blocks_started=tick.blocks_started, request_id=request_id or "")

    latency_ms = (perf_counter() - start) * 1000
    log_metric("jobs.run_now.success", 1, metadata={"job": payload.job})
    log_metric("jobs.run_now.latency_ms", latency_ms, metadata={"job": payload.job})
    return response
