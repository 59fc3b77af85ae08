"""No-op reminder provider (logs only)."""
from __future__ import annotations

import logging
from datetime import date
from typing import Sequence

from anchor.db.models.time_block import TimeBlock
from anchor.services.block_status import BlockStatus
from anchor.services.notifications.base import ReminderResult, ReminderService

logger = logging.getLogger(__name__)


class NoopReminderService(ReminderService):
    def reschedule_all(
        self,
        *,
        day: date,
        blocks: Sequence[TimeBlock],
        request_id: str | None,
    ) -> ReminderResult:
        pending = [block for block in blocks if block.status == BlockStatus.NOT_STARTED]
        logger.info(
            "Reminders replaced (noop) day=%s blocks=%s pending=%s",
            day.isoformat(),
            len(blocks),
            len(pending),
        )
        return ReminderResult(status="noop", reason="reminder provider is noop", scheduled=len(pending))
