"""TimeBlock ORM model."""
from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, Date, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID

from anchor.core.clock import utcnow
from anchor.db.base import Base
from anchor.db.types import UTCDateTime
from anchor.services.block_status import BlockStatus
from anchor.services.calendar.linkage import CalendarLinkage, Linked, linkage_from_columns, linkage_to_columns


class TimeBlock(Base):
    __tablename__ = "time_blocks"
    __table_args__ = (
        Index("ix_time_blocks_scheduled_day", "scheduled_day"),
        Index("ix_time_blocks_calendar_event_id", "calendar_event_id"),
        CheckConstraint("end_time > start_time", name="ck_time_blocks_interval"),
        CheckConstraint(
            "(calendar_event_id IS NULL AND calendar_id IS NULL AND calendar_last_modified IS NULL)"
            " OR (calendar_event_id IS NOT NULL AND calendar_id IS NOT NULL AND calendar_last_modified IS NOT NULL)",
            name="ck_time_blocks_linkage_all_or_none",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    title = Column(String(length=100), nullable=False)
    start_time = Column(UTCDateTime, nullable=False)
    end_time = Column(UTCDateTime, nullable=False)
    # Local calendar date of start_time, fixed when the block is created.
    scheduled_day = Column(Date, nullable=False)
    status_value = Column("status", String(length=20), nullable=False, default=BlockStatus.NOT_STARTED.value)
    notes = Column(Text, nullable=True)
    category = Column(String(length=50), nullable=True)
    icon = Column(String(length=32), nullable=True)
    calendar_event_id = Column(Text, nullable=True)
    calendar_id = Column(Text, nullable=True)
    calendar_last_modified = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)

    @property
    def status(self) -> BlockStatus:
        return BlockStatus(self.status_value or BlockStatus.NOT_STARTED.value)

    @status.setter
    def status(self, value: BlockStatus) -> None:
        self.status_value = BlockStatus(value).value

    @property
    def linkage(self) -> CalendarLinkage:
        return linkage_from_columns(self.calendar_event_id, self.calendar_id, self.calendar_last_modified)

    @linkage.setter
    def linkage(self, value: CalendarLinkage) -> None:
        self.calendar_event_id, self.calendar_id, self.calendar_last_modified = linkage_to_columns(value)

    @property
    def is_linked(self) -> bool:
        return isinstance(self.linkage, Linked)

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def is_active(self, now: datetime) -> bool:
        return self.start_time <= now < self.end_time

    def is_past(self, now: datetime) -> bool:
        return now >= self.end_time

    def is_future(self, now: datetime) -> bool:
        return now < self.start_time

    def current_progress(self, now: datetime) -> float:
        """Fraction of the interval elapsed, 0.0 outside it."""
        if not self.is_active(now):
            return 0.0
        total = (self.end_time - self.start_time).total_seconds()
        elapsed = (now - self.start_time).total_seconds()
        return min(max(elapsed / total, 0.0), 1.0)

    def remaining_minutes(self, now: datetime) -> int | None:
        if not self.is_active(now):
            return None
        return max(0, int((self.end_time - now).total_seconds() // 60))

    def sort_key(self) -> tuple:
        return (self.start_time, -self.status.sort_priority, self.title)

    def touch(self, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<TimeBlock {self.title!r} {self.start_time:%Y-%m-%d %H:%M}-{self.end_time:%H:%M} {self.status_value}>"
