"""DailyProgress ORM model."""
from __future__ import annotations

from typing import List
from uuid import uuid4

from sqlalchemy import Boolean, Column, Date, Integer, Text, text as sa_text
from sqlalchemy.dialects.postgresql import UUID

from anchor.core.clock import utcnow
from anchor.db.base import Base
from anchor.db.types import UTCDateTime
from anchor.services.progress_metrics import ProgressMetrics


class DailyProgress(ProgressMetrics, Base):
    __tablename__ = "daily_progress"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    date = Column(Date, nullable=False, unique=True)
    total_blocks = Column(Integer, nullable=False, default=0)
    completed_blocks = Column(Integer, nullable=False, default=0)
    skipped_blocks = Column(Integer, nullable=False, default=0)
    in_progress_blocks = Column(Integer, nullable=False, default=0)
    total_planned_minutes = Column(Integer, nullable=False, default=0)
    completed_minutes = Column(Integer, nullable=False, default=0)
    # User-entered reflection; never touched by recomputation.
    day_rating = Column(Integer, nullable=True)
    day_notes = Column(Text, nullable=True)
    summary_viewed = Column(Boolean, nullable=False, default=False, server_default=sa_text("false"))
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    def validation_errors(self) -> List[str]:
        errors = self.counter_errors()
        if self.day_rating is not None and not 1 <= self.day_rating <= 5:
            errors.append("day rating must be between 1 and 5")
        return errors
