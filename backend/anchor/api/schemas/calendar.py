"""Schemas for external calendar endpoints."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class CalendarSummary(BaseModel):
    id: str
    display_name: str
    color: Optional[str] = None


class CalendarListResponse(BaseModel):
    calendars: List[CalendarSummary]
    request_id: str


class ReconcileResponse(BaseModel):
    checked: int
    cleared: int
    errors: int
    skipped: bool
    cleared_block_ids: List[UUID] = Field(default_factory=list)
    request_id: str
