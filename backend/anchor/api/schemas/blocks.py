"""Schemas for time block endpoints."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from anchor.services.block_status import BlockStatus


class CalendarLinkSummary(BaseModel):
    state: Literal["unlinked", "pending", "linked"]
    event_id: Optional[str] = None
    calendar_id: Optional[str] = None
    last_modified: Optional[datetime] = None


class TimeBlockSummary(BaseModel):
    id: UUID
    title: str
    start_time: datetime
    end_time: datetime
    scheduled_day: date
    status: BlockStatus
    duration_minutes: int
    notes: Optional[str]
    category: Optional[str]
    icon: Optional[str]
    calendar: CalendarLinkSummary
    created_at: datetime
    updated_at: datetime


class TimeBlockListResponse(BaseModel):
    day: date
    blocks: List[TimeBlockSummary]
    request_id: str


class TimeBlockCreateRequest(BaseModel):
    title: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    link_to_calendar: bool = False
    calendar_id: Optional[str] = None


class TimeBlockUpdateRequest(BaseModel):
    """Only the fields present in the body are changed."""

    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None
    category: Optional[str] = None
    icon: Optional[str] = None
    link_to_calendar: Optional[bool] = None
    calendar_id: Optional[str] = None


class TimeBlockMutationResponse(BaseModel):
    block: Optional[TimeBlockSummary]
    changed: bool
    warnings: List[str] = Field(default_factory=list)
    calendar_status: Optional[str] = None
    request_id: str


class StatusChangeRequest(BaseModel):
    status: BlockStatus
    force: bool = False


class StatusChangeResponse(BaseModel):
    block: TimeBlockSummary
    changed: bool
    reason: Optional[str] = None
    request_id: str


class ConflictCheckResponse(BaseModel):
    has_conflict: bool
    conflicts: List[TimeBlockSummary]
    request_id: str
