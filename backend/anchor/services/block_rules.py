"""Validation rules for a proposed or edited time block."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import List, Optional

from anchor.core.clock import day_bounds, ensure_aware, local_day
from anchor.services.errors import ValidationError

TITLE_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 500
CATEGORY_MAX_LENGTH = 50
ICON_MAX_LENGTH = 32
MIN_DURATION = timedelta(minutes=1)
MAX_DURATION = timedelta(hours=24)


@dataclass(frozen=True)
class BlockFields:
    """Normalized, validated block attributes."""

    title: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str]
    category: Optional[str]
    icon: Optional[str]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def validate_block_fields(
    *,
    title: str,
    start_time: datetime,
    end_time: datetime,
    notes: Optional[str] = None,
    category: Optional[str] = None,
    icon: Optional[str] = None,
    tz: tzinfo | None = None,
) -> BlockFields:
    """Normalize inputs and raise ValidationError listing every broken rule."""
    errors: List[str] = []
    clean_title = (title or "").strip()
    clean_notes = _clean(notes)
    clean_category = _clean(category)
    clean_icon = _clean(icon)
    start = ensure_aware(start_time).astimezone(timezone.utc)
    end = ensure_aware(end_time).astimezone(timezone.utc)

    if not clean_title:
        errors.append("Title cannot be empty")
    elif len(clean_title) > TITLE_MAX_LENGTH:
        errors.append(f"Title cannot exceed {TITLE_MAX_LENGTH} characters")
    if clean_notes and len(clean_notes) > NOTES_MAX_LENGTH:
        errors.append(f"Notes cannot exceed {NOTES_MAX_LENGTH} characters")
    if clean_category and len(clean_category) > CATEGORY_MAX_LENGTH:
        errors.append(f"Category cannot exceed {CATEGORY_MAX_LENGTH} characters")
    if clean_icon and len(clean_icon) > ICON_MAX_LENGTH:
        errors.append(f"Icon cannot exceed {ICON_MAX_LENGTH} characters")

    if end <= start:
        errors.append("End time must be after start time")
    else:
        duration = end - start
        if duration < MIN_DURATION:
            errors.append("Duration must be at least 1 minute")
        elif duration > MAX_DURATION:
            errors.append("Duration cannot exceed 24 hours")
        _, day_end = day_bounds(local_day(start, tz), tz)
        # Ending exactly at the next midnight still lies within the start's day.
        if end > day_end:
            errors.append("Time block cannot cross into the next day")

    if errors:
        raise ValidationError(errors)

    return BlockFields(
        title=clean_title,
        start_time=start,
        end_time=end,
        notes=clean_notes,
        category=clean_category,
        icon=clean_icon,
    )
