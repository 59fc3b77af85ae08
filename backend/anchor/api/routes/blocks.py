"""Time block API routes."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from anchor.api.deps import get_schedule_service, scheduling_http_error
from anchor.api.schemas.blocks import (
    CalendarLinkSummary,
    ConflictCheckResponse,
    StatusChangeRequest,
    StatusChangeResponse,
    TimeBlockCreateRequest,
    TimeBlockListResponse,
    TimeBlockMutationResponse,
    TimeBlockSummary,
    TimeBlockUpdateRequest,
)
from anchor.db.models.time_block import TimeBlock
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services.errors import SchedulingError
from anchor.services.schedule_service import EDITABLE_FIELDS, MutationOutcome, ScheduleService

router = APIRouter()


@router.get("/blocks", response_model=TimeBlockListResponse, tags=["blocks"])
def list_blocks(
    http_request: Request,
    day: date = Query(..., description="Local calendar day"),
    service: ScheduleService = Depends(get_schedule_service),
) -> TimeBlockListResponse:
    """List a day's blocks ordered by start time."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace("blocks.list", metadata={"route": "/blocks"}, day=day.isoformat(), request_id=request_id):
        try:
            blocks = service.blocks_for_day(day)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("blocks.list.count", len(blocks), metadata={"day": day.isoformat()})
    return TimeBlockListResponse(
        day=day,
        blocks=[serialize_block(block) for block in blocks],
        request_id=request_id or "",
    )


@router.post(
    "/blocks",
    response_model=TimeBlockMutationResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["blocks"],
)
def create_block(
    payload: TimeBlockCreateRequest,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> TimeBlockMutationResponse:
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/blocks",
        "link_to_calendar": payload.link_to_calendar,
        "calendar_id": payload.calendar_id,
    }

    start = datetime.now(timezone.utc)
    with trace("blocks.create", metadata=metadata, request_id=request_id):
        try:
            outcome = service.add_block(
                payload.title,
                payload.start_time,
                payload.end_time,
                notes=payload.notes,
                category=payload.category,
                icon=payload.icon,
                link_to_calendar=payload.link_to_calendar,
                calendar_id=payload.calendar_id,
            )
        except SchedulingError as exc:
            log_metric("blocks.create.rejected", 1, metadata={"error": type(exc).__name__})
            raise scheduling_http_error(exc) from exc

    latency_ms = (datetime.now(timezone.utc) - start).total_seconds() * 1000
    log_metric("blocks.create.success", 1, metadata={"block_id": str(outcome.block.id)})
    log_metric("blocks.create.warnings", len(outcome.warnings))
    log_metric("blocks.create.latency_ms", latency_ms)
    return _mutation_response(outcome, request_id)


@router.get("/blocks/conflicts", response_model=ConflictCheckResponse, tags=["blocks"])
def check_conflicts(
    http_request: Request,
    start: datetime = Query(...),
    end: datetime = Query(...),
    exclude_id: Optional[UUID] = Query(default=None),
    service: ScheduleService = Depends(get_schedule_service),
) -> ConflictCheckResponse:
    """Read-only overlap check used by editors before saving."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "blocks.conflicts",
        metadata={"exclude_id": str(exclude_id) if exclude_id else None},
        request_id=request_id,
    ):
        try:
            conflicts = service.conflicts(start, end, exclude_id)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("blocks.conflicts.count", len(conflicts))
    return ConflictCheckResponse(
        has_conflict=bool(conflicts),
        conflicts=[serialize_block(block) for block in conflicts],
        request_id=request_id or "",
    )


@router.patch("/blocks/{block_id}", response_model=TimeBlockMutationResponse, tags=["blocks"])
def update_block(
    block_id: UUID,
    payload: TimeBlockUpdateRequest,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> TimeBlockMutationResponse:
    request_id = getattr(http_request.state, "request_id", None)
    provided = payload.model_dump(exclude_unset=True)
    changes = {name: provided[name] for name in EDITABLE_FIELDS if name in provided}

    with trace(
        "blocks.update",
        metadata={"route": f"/blocks/{block_id}", "fields": sorted(changes)},
        block_id=str(block_id),
        request_id=request_id,
    ):
        try:
            block = service.get_block(block_id)
            outcome = service.update_block(
                block,
                changes,
                link_to_calendar=payload.link_to_calendar,
                calendar_id=payload.calendar_id,
            )
        except SchedulingError as exc:
            log_metric("blocks.update.rejected", 1, metadata={"error": type(exc).__name__})
            raise scheduling_http_error(exc) from exc

    log_metric("blocks.update.success", 1, metadata={"block_id": str(block_id)})
    log_metric("blocks.update.changed", 1 if outcome.changed else 0, metadata={"block_id": str(block_id)})
    return _mutation_response(outcome, request_id)


@router.delete("/blocks/{block_id}", response_model=TimeBlockMutationResponse, tags=["blocks"])
def delete_block(
    block_id: UUID,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> TimeBlockMutationResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("blocks.delete", block_id=str(block_id), request_id=request_id):
        try:
            block = service.get_block(block_id)
            outcome = service.delete_block(block)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("blocks.delete.success", 1, metadata={"block_id": str(block_id)})
    return _mutation_response(outcome, request_id)


@router.post("/blocks/{block_id}/status", response_model=StatusChangeResponse, tags=["blocks"])
def change_status(
    block_id: UUID,
    payload: StatusChangeRequest,
    http_request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> StatusChangeResponse:
    """Apply a status transition; disallowed ones return changed=false with a reason."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata = {"status": payload.status.value, "force": payload.force}
    with trace("blocks.status", metadata=metadata, block_id=str(block_id), request_id=request_id):
        try:
            block = service.get_block(block_id)
            outcome = service.transition_status(block, payload.status, force=payload.force)
        except SchedulingError as exc:
            raise scheduling_http_error(exc) from exc

    log_metric("blocks.status.changed", 1 if outcome.changed else 0, metadata={"status": payload.status.value})
    return StatusChangeResponse(
        block=serialize_block(outcome.block),
        changed=outcome.changed,
        reason=outcome.reason,
        request_id=request_id or "",
    )


def serialize_block(block: TimeBlock) -> TimeBlockSummary:
    linkage = block.linkage
    return TimeBlockSummary(
        id=block.id,
        title=block.title,
        start_time=block.start_time,
        end_time=block.end_time,
        scheduled_day=block.scheduled_day,
        status=block.status,
        duration_minutes=block.duration_minutes,
        notes=block.notes,
        category=block.category,
        icon=block.icon,
        calendar=CalendarLinkSummary(
            state=linkage.state,
            event_id=block.calendar_event_id,
            calendar_id=block.calendar_id,
            last_modified=block.calendar_last_modified,
        ),
        created_at=block.created_at,
        updated_at=block.updated_at,
    )


def _mutation_response(outcome: MutationOutcome, request_id: Optional[str]) -> TimeBlockMutationResponse:
    return TimeBlockMutationResponse(
        block=serialize_block(outcome.block) if outcome.block is not None else None,
        changed=outcome.changed,
        warnings=outcome.warnings,
        calendar_status=outcome.calendar.status if outcome.calendar else None,
        request_id=request_id or "",
    )
