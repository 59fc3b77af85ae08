"""Day-level API routes: bulk actions and daily progress."""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Request

from anchor.api.deps import get_schedule_service, scheduling_http_error
from anchor.api.schemas.days import (
    CopyDayRequest,
    CopyDayResponse,
    DailyProgressResponse,
    DailyProgressUpdateRequest,
    DayMutationResponse,
    StatusRefreshResponse,
)
from anchor.db.models.daily_progress import DailyProgress
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services.errors import SchedulingError
from anchor.services.schedule_service import ScheduleService

router = APIRouter()


@router.delete("/days/{day}/blocks", response_model=DayMutationResponse, tags=["days"])
def delete_day_blocks(
    day: date,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> DayMutationResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("days.delete_all", day=day.isoformat(), request_id=request_id):
        try:
            outcome = service.delete_all_blocks(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("days.delete_all.success", 1, metadata={"day": day.isoformat()})
    return DayMutationResponse(day=day, changed=outcome.changed, warnings=outcome.warnings, request_id=request_id or "")


@router.post("/days/{day}/reset", response_model=DayMutationResponse, tags=["days"])
def reset_day(
    day: date,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> DayMutationResponse:
    """Return every block of the day to not_started."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("days.reset", day=day.isoformat(), request_id=request_id):
        try:
            outcome = service.reset_statuses(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("days.reset.changed", 1 if outcome.changed else 0, metadata={"day": day.isoformat()})
    return DayMutationResponse(day=day, changed=outcome.changed, warnings=outcome.warnings, request_id=request_id or "")


@router.post("/days/{day}/refresh-status", response_model=StatusRefreshResponse, tags=["days"])
def refresh_day_status(
    day: date,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> StatusRefreshResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("days.refresh_status", day=day.isoformat(), request_id=request_id):
        try:
            started = service.refresh_statuses(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("days.refresh_status.started", started, metadata={"day": day.isoformat()})
    return StatusRefreshResponse(day=day, blocks_started=started, request_id=request_id or "")


@router.post("/days/{day}/copy", response_model=CopyDayResponse, tags=["days"])
def copy_day(
    day: date,
    payload: CopyDayRequest,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> CopyDayResponse:
    """Copy a day's routine onto another day; any conflict rejects the whole copy."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {"target_day": payload.target_day.isoformat()}
    with trace("days.copy", metadata=metadata, day=day.isoformat(), request_id=request_id):
        try:
            copies = service.copy_blocks(day, payload.target_day)
        except SchedulingError as exc:
            log_metric("days.copy.rejected", 1, metadata={"error": type(exc).__name__})
            raise scheduling_http_error(exc) from exc

    log_metric("days.copy.blocks", len(copies), metadata={"source_day": day.isoformat()})
    return CopyDayResponse(
        source_day=day,
        target_day=payload.target_day,
        blocks_copied=len(copies),
        request_id=request_id or "",
    )


@router.get("/days/{day}/progress", response_model=DailyProgressResponse, tags=["days"])
def get_day_progress(
    day: date,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> DailyProgressResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("days.progress", day=day.isoformat(), request_id=request_id):
        try:
            progress = service.daily_progress(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("days.progress.completion", progress.completion_percentage, metadata={"day": day.isoformat()})
    return serialize_progress(progress, request_id)


@router.patch("/days/{day}/progress", response_model=DailyProgressResponse, tags=["days"])
def update_day_progress(
    day: date,
    payload: DailyProgressUpdateRequest,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> DailyProgressResponse:
    """Record the day's reflection: rating, notes and whether the summary was seen."""
    request_id = getattr(http_request.state, "request_id", None)
    provided = payload.model_dump(exclude_unset=True)
    if provided.get("summary_viewed") is None:
        provided.pop("summary_viewed", None)
    with trace("days.progress.update", metadata={"fields": sorted(provided)}, day=day.isoformat(), request_id=request_id):
        try:
            service.update_day_reflection(day, provided)
            progress = service.daily_progress(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("days.progress.update.success", 1, metadata={"day": day.isoformat()})
    return serialize_progress(progress, request_id)


def serialize_progress(progress: DailyProgress, request_id: str | None) -> DailyProgressResponse:
    return DailyProgressResponse(
        date=progress.date,
        total_blocks=progress.total_blocks,
        completed_blocks=progress.completed_blocks,
        skipped_blocks=progress.skipped_blocks,
        in_progress_blocks=progress.in_progress_blocks,
        not_started_blocks=progress.not_started_blocks,
        total_planned_minutes=progress.total_planned_minutes,
        completed_minutes=progress.completed_minutes,
        completion_percentage=progress.completion_percentage,
        time_completion_percentage=progress.time_completion_percentage,
        skip_rate=progress.skip_rate,
        is_day_complete=progress.is_day_complete,
        is_good_day=progress.is_good_day,
        performance_level=progress.performance_level,
        day_rating=progress.day_rating,
        day_notes=progress.day_notes,
        summary_viewed=bool(progress.summary_viewed),
        request_id=request_id or "",
    )
