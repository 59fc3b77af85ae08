"""Calendar provider factory."""
from __future__ import annotations

import logging
from functools import lru_cache

from anchor.core.config import settings
from anchor.services.calendar.base import CalendarProvider
from anchor.services.calendar.memory import InMemoryCalendarProvider

logger = logging.getLogger(__name__)


@lru_cache
def get_calendar_provider() -> CalendarProvider:
    provider = settings.calendar_provider.lower()
    if provider != "memory":
        logger.warning("Unknown calendar provider %r; using in-memory calendar", provider)
    return InMemoryCalendarProvider()
