"""Schedule action log ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, Index, Text
from sqlalchemy.dialects.postgresql import UUID

from anchor.core.clock import utcnow
from anchor.db.base import Base
from anchor.db.types import JSONBCompat, UTCDateTime


class ScheduleActionLog(Base):
    __tablename__ = "schedule_actions_log"
    __table_args__ = (
        Index("ix_schedule_actions_log_day", "day"),
        Index("ix_schedule_actions_log_block_id", "block_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    # Not a foreign key: entries outlive the blocks they describe.
    block_id = Column(UUID(as_uuid=True), nullable=True)
    day = Column(Date, nullable=True)
    action_type = Column(Text, nullable=False)
    action_payload = Column(JSONBCompat, nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
