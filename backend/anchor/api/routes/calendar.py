"""External calendar routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from anchor.api.deps import get_schedule_service
from anchor.api.schemas.calendar import CalendarListResponse, CalendarSummary, ReconcileResponse
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services.schedule_service import ScheduleService

router = APIRouter()


@router.get("/calendars", response_model=CalendarListResponse, tags=["calendar"])
def list_calendars(
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> CalendarListResponse:
    """Writable calendars; empty when the calendar is unreachable."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("calendar.list", request_id=request_id):
        calendars = service.list_calendars()

    log_metric("calendar.list.count", len(calendars))
    return CalendarListResponse(
        calendars=[
            CalendarSummary(id=calendar.id, display_name=calendar.display_name, color=calendar.color)
            for calendar in calendars
        ],
        request_id=request_id or "",
    )


@router.post("/calendar/reconcile", response_model=ReconcileResponse, tags=["calendar"])
def reconcile_calendar(
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> ReconcileResponse:
    """Clear links to calendar events that were deleted outside the app."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("calendar.reconcile.request", request_id=request_id):
        result = service.reconcile_calendar()

    return ReconcileResponse(
        checked=result.checked,
        cleared=result.cleared,
        errors=result.errors,
        skipped=result.skipped,
        cleared_block_ids=result.cleared_block_ids,
        request_id=request_id or "",
    )
