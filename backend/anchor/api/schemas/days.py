"""Schemas for day-level and stats endpoints."""
from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from anchor.services.progress_metrics import PerformanceLevel


class DayMutationResponse(BaseModel):
    day: date
    changed: bool
    warnings: List[str] = Field(default_factory=list)
    request_id: str


class StatusRefreshResponse(BaseModel):
    day: date
    blocks_started: int
    request_id: str


class CopyDayRequest(BaseModel):
    target_day: date


class CopyDayResponse(BaseModel):
    source_day: date
    target_day: date
    blocks_copied: int
    request_id: str


class DailyProgressResponse(BaseModel):
    date: date
    total_blocks: int
    completed_blocks: int
    skipped_blocks: int
    in_progress_blocks: int
    not_started_blocks: int
    total_planned_minutes: int
    completed_minutes: int
    completion_percentage: float
    time_completion_percentage: float
    skip_rate: float
    is_day_complete: bool
    is_good_day: bool
    performance_level: PerformanceLevel
    day_rating: Optional[int]
    day_notes: Optional[str]
    summary_viewed: bool
    request_id: str


class DailyProgressUpdateRequest(BaseModel):
    """Reflection fields; omitted fields are left alone."""

    day_rating: Optional[int] = Field(default=None, ge=1, le=5)
    day_notes: Optional[str] = Field(default=None, max_length=2000)
    summary_viewed: Optional[bool] = None


class WeeklyStatsResponse(BaseModel):
    week_start: date
    week_end: date
    days_with_data: int
    good_days: int
    completed_days: int
    average_completion: float
    total_blocks: int
    completed_blocks: int
    skipped_blocks: int
    total_planned_minutes: int
    completed_minutes: int
    request_id: str
