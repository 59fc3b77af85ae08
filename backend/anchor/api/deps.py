"""Shared FastAPI dependencies and error mapping for schedule routes."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from anchor.core.clock import local_timezone
from anchor.db.deps import get_db
from anchor.services.calendar.base import CalendarProvider
from anchor.services.calendar.factory import get_calendar_provider
from anchor.services.calendar.sync import CalendarSyncCoordinator
from anchor.services.errors import (
    BlockNotFoundError,
    ConflictError,
    PersistenceError,
    SchedulingError,
    ValidationError,
    describe_block,
)
from anchor.services.notifications.base import ReminderService
from anchor.services.notifications.factory import get_reminder_service
from anchor.services.schedule_service import ScheduleService


def get_schedule_service(
    request: Request,
    db: Session = Depends(get_db),
    calendar_provider: CalendarProvider = Depends(get_calendar_provider),
    reminders: ReminderService = Depends(get_reminder_service),
) -> ScheduleService:
    return ScheduleService(
        db,
        calendar=CalendarSyncCoordinator(db, calendar_provider),
        reminders=reminders,
        tz=local_timezone(),
        request_id=getattr(request.state, "request_id", None),
    )


def scheduling_http_error(exc: SchedulingError) -> HTTPException:
    """Translate a service error into the HTTP response the client sees."""
    if isinstance(exc, ValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Invalid time block", "errors": exc.errors},
        )
    if isinstance(exc, ConflictError):
        conflicts: list[Dict[str, Any]] = [
            {
                "id": str(block.id),
                "title": block.title,
                "start_time": block.start_time.isoformat(),
                "end_time": block.end_time.isoformat(),
                "description": describe_block(block, exc.tz),
            }
            for block in exc.conflicts
        ]
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "conflicts": conflicts},
        )
    if isinstance(exc, BlockNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Time block not found")
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Schedule storage unavailable")
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
