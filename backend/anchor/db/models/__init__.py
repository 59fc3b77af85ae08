"""ORM models exposed for metadata discovery."""
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.schedule_action_log import ScheduleActionLog
from anchor.db.models.time_block import TimeBlock

__all__ = [
    "DailyProgress",
    "ScheduleActionLog",
    "TimeBlock",
]
