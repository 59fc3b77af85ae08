"""Weekly statistics routes."""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from anchor.api.deps import get_schedule_service, scheduling_http_error
from anchor.api.schemas.days import WeeklyStatsResponse
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services.errors import SchedulingError
from anchor.services.schedule_service import ScheduleService

router = APIRouter()


@router.get("/stats/weekly", response_model=Optional[WeeklyStatsResponse], tags=["stats"])
def get_weekly_stats(
    http_request: Request,
    day: date = Query(..., description="Any day inside the Monday-Sunday week"),
    service: ScheduleService = Depends(get_schedule_service),
) -> Optional[WeeklyStatsResponse]:
    """Roll up the week containing ``day``; null when no day that week has blocks."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("stats.weekly", day=day.isoformat(), request_id=request_id):
        try:
            stats = service.weekly_stats(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    if stats is None:
        log_metric("stats.weekly.empty", 1, metadata={"day": day.isoformat()})
        return None

    log_metric("stats.weekly.average_completion", stats.average_completion, metadata={"week_start": stats.week_start.isoformat()})
    return WeeklyStatsResponse(
        week_start=stats.week_start,
        week_end=stats.week_end,
        days_with_data=stats.days_with_data,
        good_days=stats.good_days,
        completed_days=stats.completed_days,
        average_completion=stats.average_completion,
        total_blocks=stats.total_blocks,
        completed_blocks=stats.completed_blocks,
        skipped_blocks=stats.skipped_blocks,
        total_planned_minutes=stats.total_planned_minutes,
        completed_minutes=stats.completed_minutes,
        request_id=request_id or "",
    )
