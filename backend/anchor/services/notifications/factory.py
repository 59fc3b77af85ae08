"""Reminder service factory."""
from __future__ import annotations

from functools import lru_cache

from anchor.core.config import settings
from anchor.services.notifications.base import ReminderService
from anchor.services.notifications.noop import NoopReminderService


@lru_cache
def get_reminder_service() -> ReminderService:
    provider = settings.notifications_provider.lower()
    if provider == "noop":
        return NoopReminderService()
    # Device push providers plug in here.
    return NoopReminderService()
