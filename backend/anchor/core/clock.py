"""Wall-clock and calendar-day helpers.

All instants are handled as timezone-aware datetimes. A block's "day" is the
calendar date of its start instant in the configured local timezone.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Tuple
from zoneinfo import ZoneInfo

from anchor.core.config import settings

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def local_timezone() -> tzinfo:
    return ZoneInfo(settings.local_timezone)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def local_day(instant: datetime, tz: tzinfo | None = None) -> date:
    return ensure_aware(instant).astimezone(tz or local_timezone()).date()


def day_bounds(day: date, tz: tzinfo | None = None) -> Tuple[datetime, datetime]:
    """Return the half-open [start, end) instants of a local calendar day."""
    zone = tz or local_timezone()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=zone)
    return start, end


def week_window(day: date) -> Tuple[date, date]:
    """Monday..Sunday window containing ``day``."""
    start = day - timedelta(days=day.weekday())
    return start, start + timedelta(days=6)
