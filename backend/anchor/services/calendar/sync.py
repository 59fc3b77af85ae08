"""Keeps each block's calendar linkage loosely consistent with an external calendar.

The external store is outside our control: every write to it is advisory and
may fail or time out without affecting the local block. Existence checks are
authoritative and drive the one-way drift correction in ``reconcile``.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anchor.core.clock import Clock, utcnow
from anchor.core.config import settings
from anchor.db.models.time_block import TimeBlock
from anchor.observability.metrics import log_metric
from anchor.observability.tracing import trace
from anchor.services import block_store
from anchor.services.calendar.base import CalendarInfo, CalendarProvider, CalendarProviderError
from anchor.services.calendar.factory import get_calendar_provider
from anchor.services.calendar.linkage import UNLINKED, Linked, PendingLink
from anchor.services.errors import ExternalCalendarError, PersistenceError

logger = logging.getLogger(__name__)

# Provider calls run here so a hung calendar never blocks past the caller's budget.
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="calendar-sync")


@dataclass
class SyncOutcome:
    status: str
    reason: Optional[str] = None

    @property
    def warning(self) -> Optional[str]:
        """Message for the caller when the external side did not go as asked."""
        if self.status in ("failed", "skipped") or (self.status == "unlinked" and self.reason):
            return self.reason
        return None


@dataclass
class ReconcileResult:
    checked: int = 0
    cleared: int = 0
    errors: int = 0
    skipped: bool = False
    cleared_block_ids: List[UUID] = field(default_factory=list)


class CalendarSyncCoordinator:
    def __init__(
        self,
        db: Session,
        provider: Optional[CalendarProvider] = None,
        *,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.provider = provider or get_calendar_provider()
        self.timeout = settings.calendar_timeout_seconds if timeout is None else timeout
        self.enabled = settings.calendar_sync_enabled if enabled is None else enabled
        self.clock = clock

    def _call(
        self,
        operation: str,
        fn: Callable[..., Any],
        *,
        on_late: Optional[Callable[[Future], None]] = None,
        **kwargs: Any,
    ) -> Any:
        future = _executor.submit(fn, **kwargs)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout as exc:
            if not future.cancel() and on_late is not None:
                # The call is still running; whatever it produces is handled once it lands.
                future.add_done_callback(on_late)
            raise ExternalCalendarError(f"calendar {operation} timed out after {self.timeout:g}s") from exc
        except CalendarProviderError as exc:
            raise ExternalCalendarError(f"calendar {operation} failed: {exc}") from exc
        except Exception as exc:
            # Provider implementations wrap arbitrary client libraries.
            raise ExternalCalendarError(f"calendar {operation} failed: {exc!r}") from exc

    def list_calendars(self) -> List[CalendarInfo]:
        return self._call("list", self.provider.list_calendars)

    def link_on_create(self, block: TimeBlock, calendar_id: str) -> SyncOutcome:
        """Mirror a freshly persisted block into ``calendar_id`` (best effort)."""
        if not self.enabled:
            return SyncOutcome("skipped", "Calendar sync is off; saved without a Calendar link.")
        if block.is_linked:
            return SyncOutcome("unchanged")

        pending = PendingLink(calendar_id=calendar_id)
        block_id = block.id
        payload = dict(title=block.title, notes=block.notes, start=block.start_time, end=block.end_time)
        with trace("calendar.create", metadata={"calendar_id": calendar_id}, block_id=str(block_id)):
            try:
                created = self._call(
                    "create",
                    self.provider.create_event,
                    on_late=self._discard_late_event,
                    calendar_id=pending.calendar_id,
                    **payload,
                )
            except ExternalCalendarError as exc:
                logger.warning("Could not add block %s to calendar %s: %s", block_id, calendar_id, exc)
                log_metric("calendar.sync.failed", 1, metadata={"operation": "create"})
                return SyncOutcome("failed", "Saved, but couldn't add to Calendar.")

        block.linkage = Linked(
            event_id=created.event_id,
            calendar_id=pending.calendar_id,
            last_modified=created.last_modified or self.clock(),
        )
        block.touch(self.clock())
        try:
            block_store.save_block(
                self.db,
                block,
                log=block_store.action_log(
                    "calendar_linked",
                    block=block,
                    payload={"event_id": created.event_id, "calendar_id": calendar_id},
                    reason="Block mirrored to external calendar",
                ),
            )
        except PersistenceError:
            # The local row rolled back to unlinked; drop the event so it is not orphaned.
            self._delete_quietly(created.event_id)
            return SyncOutcome("failed", "Saved, but couldn't record the Calendar link.")
        log_metric("calendar.sync.linked", 1, metadata={"calendar_id": calendar_id})
        return SyncOutcome("linked")

    def sync_on_update(self, block: TimeBlock, wants_linked: bool, calendar_id: Optional[str] = None) -> SyncOutcome:
        linkage = block.linkage
        if isinstance(linkage, Linked):
            if wants_linked:
                return self._push_update(block, linkage)
            return self._unlink(block, linkage)
        if wants_linked:
            if not calendar_id:
                return SyncOutcome("skipped", "No calendar selected; saved without a Calendar link.")
            return self.link_on_create(block, calendar_id)
        return SyncOutcome("unchanged")

    def _push_update(self, block: TimeBlock, linkage: Linked) -> SyncOutcome:
        if not self.enabled:
            return SyncOutcome("skipped", "Calendar sync is off; Calendar was not updated.")
        with trace("calendar.update", metadata={"calendar_id": linkage.calendar_id}, block_id=str(block.id)):
            try:
                last_modified = self._call(
                    "update",
                    self.provider.update_event,
                    event_id=linkage.event_id,
                    title=block.title,
                    notes=block.notes,
                    start=block.start_time,
                    end=block.end_time,
                )
            except ExternalCalendarError as exc:
                # Keep the last known-good linkage; the next edit or sweep retries.
                logger.warning("Could not update calendar event %s for block %s: %s", linkage.event_id, block.id, exc)
                log_metric("calendar.sync.failed", 1, metadata={"operation": "update"})
                return SyncOutcome("failed", "Updated, but couldn't update Calendar.")

        block.linkage = Linked(
            event_id=linkage.event_id,
            calendar_id=linkage.calendar_id,
            last_modified=last_modified or self.clock(),
        )
        try:
            block_store.save_block(self.db, block)
        except PersistenceError:
            return SyncOutcome("failed", "Updated Calendar, but couldn't record the sync time.")
        return SyncOutcome("updated")

    def _unlink(self, block: TimeBlock, linkage: Linked) -> SyncOutcome:
        reason = None
        if self.enabled:
            try:
                self._call("delete", self.provider.delete_event, event_id=linkage.event_id)
            except ExternalCalendarError as exc:
                logger.warning("Could not delete calendar event %s for block %s: %s", linkage.event_id, block.id, exc)
                log_metric("calendar.sync.failed", 1, metadata={"operation": "delete"})
                reason = "Unlinked, but couldn't remove the Calendar event."

        # Cleared regardless of the remote outcome: never leave a block falsely linked.
        block.linkage = UNLINKED
        block.touch(self.clock())
        block_store.save_block(
            self.db,
            block,
            log=block_store.action_log(
                "calendar_unlinked",
                block=block,
                payload={"event_id": linkage.event_id, "calendar_id": linkage.calendar_id, "remote_deleted": reason is None},
                reason="Calendar link removed",
            ),
        )
        return SyncOutcome("unlinked", reason)

    def unlink_on_delete(self, block: TimeBlock) -> SyncOutcome:
        """Remove the mirrored event before the local block goes away."""
        linkage = block.linkage
        if not isinstance(linkage, Linked):
            return SyncOutcome("unchanged")
        if not self.enabled:
            return SyncOutcome("skipped", "Calendar sync is off; the Calendar event was left in place.")
        try:
            self._call("delete", self.provider.delete_event, event_id=linkage.event_id)
        except ExternalCalendarError as exc:
            logger.warning("Could not delete calendar event %s for deleted block %s: %s", linkage.event_id, block.id, exc)
            log_metric("calendar.sync.failed", 1, metadata={"operation": "delete"})
            return SyncOutcome("failed", "Deleted, but couldn't remove the Calendar event.")
        return SyncOutcome("unlinked")

    def _delete_quietly(self, event_id: str) -> None:
        try:
            self._call("delete", self.provider.delete_event, event_id=event_id)
        except ExternalCalendarError as exc:
            logger.warning("Orphaned calendar event %s could not be removed: %s", event_id, exc)

    def _discard_late_event(self, future: Future) -> None:
        """Delete an event whose create finished after the caller gave up on it."""
        if future.cancelled() or future.exception() is not None:
            return
        event_id = future.result().event_id
        try:
            self.provider.delete_event(event_id=event_id)
        except Exception as exc:
            logger.warning("Late calendar event %s could not be removed: %s", event_id, exc)
            return
        logger.info("Removed calendar event %s created after the caller timed out", event_id)
        log_metric("calendar.sync.late_event_removed", 1)

    def reconcile(self, blocks: Optional[Sequence[TimeBlock]] = None) -> ReconcileResult:
        """Clear linkage on blocks whose external event was deleted out of band.

        Never raises. Only clears, never sets, linkage, so a concurrent edit that
        re-links a block before it is examined wins.
        """
        result = ReconcileResult()
        if not self.enabled:
            result.skipped = True
            return result

        with trace("calendar.reconcile", metadata={"explicit_blocks": blocks is not None}):
            if blocks is None:
                try:
                    blocks = block_store.load_linked_blocks(self.db)
                except PersistenceError:
                    result.errors += 1
                    return result

            for block in blocks:
                self._reconcile_block(block, result)

        logger.info(
            "Calendar reconcile complete: checked=%s cleared=%s errors=%s",
            result.checked,
            result.cleared,
            result.errors,
        )
        log_metric("calendar.reconcile.cleared", result.cleared)
        log_metric("calendar.reconcile.errors", result.errors)
        return result

    def _reconcile_block(self, block: TimeBlock, result: ReconcileResult) -> None:
        linkage = block.linkage
        if not isinstance(linkage, Linked):
            return
        result.checked += 1
        try:
            exists = self._call("exists", self.provider.event_exists, event_id=linkage.event_id)
        except ExternalCalendarError as exc:
            result.errors += 1
            logger.warning("Skipping block %s during reconcile: %s", block.id, exc)
            return
        if exists:
            return

        try:
            self.db.refresh(block)
        except SQLAlchemyError:
            self.db.rollback()
            logger.info("Block %s disappeared before its calendar drift could be recorded", block.id)
            return
        if block.calendar_event_id != linkage.event_id:
            logger.info("Block %s was re-linked concurrently; leaving it alone", block.id)
            return

        now = self.clock()
        block.linkage = UNLINKED
        block.touch(now)
        try:
            block_store.save_block(
                self.db,
                block,
                log=block_store.action_log(
                    "calendar_drift_cleared",
                    block=block,
                    payload={
                        "event_id": linkage.event_id,
                        "calendar_id": linkage.calendar_id,
                        "detected_at": now.isoformat(),
                    },
                    reason="External calendar event no longer exists",
                ),
            )
        except PersistenceError:
            result.errors += 1
            return
        result.cleared += 1
        result.cleared_block_ids.append(block.id)
        logger.info("Cleared calendar link for block %s (event %s missing)", block.id, linkage.event_id)
