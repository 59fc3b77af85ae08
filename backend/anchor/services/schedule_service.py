"""Schedule orchestration: validate, conflict-check, persist, sync, remind.

Validation and conflict failures are raised before anything is written.
Calendar problems happen after the local commit and come back as warnings.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from anchor.core.clock import Clock, ensure_aware, local_day, local_timezone, utcnow, week_window
from anchor.db.models.daily_progress import DailyProgress
from anchor.db.models.time_block import TimeBlock
from anchor.services import block_store
from anchor.services.block_rules import validate_block_fields
from anchor.services.block_status import BlockStatus, automatic_status, decide_transition
from anchor.services.calendar.base import CalendarInfo
from anchor.services.calendar.sync import CalendarSyncCoordinator, ReconcileResult, SyncOutcome
from anchor.services.conflict_detector import find_conflicts
from anchor.services.errors import BlockNotFoundError, ConflictError, ExternalCalendarError, ValidationError
from anchor.services.notifications.base import ReminderResult, ReminderService
from anchor.services.notifications.hooks import reschedule_day_reminders
from anchor.services.progress_aggregator import WeeklyStats, aggregate, aggregate_week, apply_snapshot

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "start_time", "end_time", "notes", "category", "icon")
REQUIRED_FIELDS = ("title", "start_time", "end_time")
REFLECTION_FIELDS = ("day_rating", "day_notes", "summary_viewed")


@dataclass
class MutationOutcome:
    block: Optional[TimeBlock] = None
    changed: bool = True
    reason: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    calendar: Optional[SyncOutcome] = None
    reminders: Optional[ReminderResult] = None

    def add_calendar(self, outcome: SyncOutcome) -> None:
        self.calendar = outcome
        if outcome.warning:
            self.warnings.append(outcome.warning)


class ScheduleService:
    """Caller-facing façade over one database session.

    Single writer: callers must not mutate the same block from two services
    at once. The calendar sweep may run alongside because it only clears links.
    """

    def __init__(
        self,
        db: Session,
        *,
        calendar: Optional[CalendarSyncCoordinator] = None,
        reminders: Optional[ReminderService] = None,
        clock: Clock = utcnow,
        tz: Optional[tzinfo] = None,
        request_id: Optional[str] = None,
    ):
        self.db = db
        self.clock = clock
        self.calendar = calendar or CalendarSyncCoordinator(db, clock=clock)
        self.reminders = reminders
        self.tz = tz or local_timezone()
        self.request_id = request_id

    # Queries

    def get_block(self, block_id: UUID) -> TimeBlock:
        block = block_store.get_block(self.db, block_id)
        if block is None:
            raise BlockNotFoundError(block_id)
        return block

    def blocks_for_day(self, day: date) -> List[TimeBlock]:
        return sorted(block_store.load_blocks_for_day(self.db, day), key=lambda block: block.sort_key())

    def conflicts(self, start: datetime, end: datetime, exclude_id: Optional[UUID] = None) -> List[TimeBlock]:
        start = ensure_aware(start)
        day = local_day(start, self.tz)
        existing = block_store.load_blocks_for_day(self.db, day)
        return find_conflicts(start, ensure_aware(end), existing, exclude_id, tz=self.tz)

    def daily_progress(self, day: date) -> DailyProgress:
        """Load (creating on first use) and recompute the day's progress record."""
        return self._refresh_progress(day)

    def weekly_stats(self, day: date) -> Optional[WeeklyStats]:
        """Stats for the Monday..Sunday week containing ``day``; None if it has no blocks."""
        week_start, week_end = week_window(day)
        blocks_by_day: Dict[date, List[TimeBlock]] = defaultdict(list)
        for block in block_store.load_blocks_between(self.db, week_start, week_end):
            blocks_by_day[block.scheduled_day].append(block)
        if not blocks_by_day:
            return None

        stored_days = {progress.date for progress in block_store.load_progress_between(self.db, week_start, week_end)}
        progress_by_date = {
            day_: self._refresh_progress(day_, blocks_by_day.get(day_, []))
            for day_ in sorted(set(blocks_by_day) | stored_days)
        }
        return aggregate_week(week_start, progress_by_date)

    def list_calendars(self) -> List[CalendarInfo]:
        try:
            return self.calendar.list_calendars()
        except ExternalCalendarError as exc:
            logger.warning("Could not list calendars: %s", exc)
            return []

    # Commands

    def add_block(
        self,
        title: str,
        start_time: datetime,
        end_time: datetime,
        notes: Optional[str] = None,
        category: Optional[str] = None,
        icon: Optional[str] = None,
        link_to_calendar: bool = False,
        calendar_id: Optional[str] = None,
    ) -> MutationOutcome:
        fields = validate_block_fields(
            title=title,
            start_time=start_time,
            end_time=end_time,
            notes=notes,
            category=category,
            icon=icon,
            tz=self.tz,
        )
        day = local_day(fields.start_time, self.tz)
        existing = block_store.load_blocks_for_day(self.db, day)
        conflicts = find_conflicts(fields.start_time, fields.end_time, existing, tz=self.tz)
        if conflicts:
            raise ConflictError(conflicts, tz=self.tz)

        now = self.clock()
        block = TimeBlock(
            id=uuid4(),
            title=fields.title,
            start_time=fields.start_time,
            end_time=fields.end_time,
            scheduled_day=day,
            notes=fields.notes,
            category=fields.category,
            icon=fields.icon,
            created_at=now,
            updated_at=now,
        )
        block.status = BlockStatus.NOT_STARTED
        block_store.save_block(
            self.db,
            block,
            log=block_store.action_log("block_created", block=block, reason="Time block added"),
        )
        logger.info("Added block %s on %s", block.id, day)

        outcome = MutationOutcome(block=block)
        if link_to_calendar:
            if calendar_id:
                outcome.add_calendar(self.calendar.link_on_create(block, calendar_id))
            else:
                outcome.warnings.append("No calendar selected; saved without a Calendar link.")
        outcome.reminders = self._after_change(day)
        return outcome

    def update_block(
        self,
        block: TimeBlock,
        changes: Mapping[str, Any],
        link_to_calendar: Optional[bool] = None,
        calendar_id: Optional[str] = None,
    ) -> MutationOutcome:
        """Apply field edits, re-running validation and conflict detection first.

        ``link_to_calendar`` None keeps the current link state. Status is not
        editable here; use ``transition_status``.
        """
        unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
        if unknown:
            raise ValidationError([f"Field '{name}' cannot be edited" for name in unknown])
        cleared = [name for name in REQUIRED_FIELDS if name in changes and changes[name] is None]
        if cleared:
            raise ValidationError([f"Field '{name}' cannot be cleared" for name in cleared])

        merged = {name: changes.get(name, getattr(block, name)) for name in EDITABLE_FIELDS}
        fields = validate_block_fields(tz=self.tz, **merged)
        if local_day(fields.start_time, self.tz) != block.scheduled_day:
            raise ValidationError(["Edits cannot move a block to another day; delete it and add it again"])
        existing = block_store.load_blocks_for_day(self.db, block.scheduled_day)
        conflicts = find_conflicts(fields.start_time, fields.end_time, existing, block.id, tz=self.tz)
        if conflicts:
            raise ConflictError(conflicts, tz=self.tz)

        changed_fields = [name for name in EDITABLE_FIELDS if getattr(fields, name) != getattr(block, name)]
        if changed_fields:
            for name in changed_fields:
                setattr(block, name, getattr(fields, name))
            block.touch(self.clock())
            block_store.save_block(
                self.db,
                block,
                log=block_store.action_log(
                    "block_updated",
                    block=block,
                    payload={"changed_fields": changed_fields},
                    reason="Time block edited",
                ),
            )

        outcome = MutationOutcome(block=block, changed=bool(changed_fields))
        wants_linked = block.is_linked if link_to_calendar is None else link_to_calendar
        if changed_fields or link_to_calendar is not None:
            outcome.add_calendar(self.calendar.sync_on_update(block, wants_linked, calendar_id))
            if outcome.calendar.status in ("linked", "unlinked"):
                outcome.changed = True
        if outcome.changed:
            outcome.reminders = self._after_change(block.scheduled_day)
        return outcome

    def delete_block(self, block: TimeBlock) -> MutationOutcome:
        day = block.scheduled_day
        outcome = MutationOutcome()
        outcome.add_calendar(self.calendar.unlink_on_delete(block))
        block_store.delete_blocks(
            self.db,
            [block],
            logs=[
                block_store.action_log(
                    "block_deleted",
                    block=block,
                    payload={"calendar": outcome.calendar.status},
                    reason="Time block deleted",
                )
            ],
        )
        logger.info("Deleted block on %s", day)
        outcome.reminders = self._after_change(day)
        return outcome

    def delete_all_blocks(self, day: date) -> MutationOutcome:
        blocks = block_store.load_blocks_for_day(self.db, day)
        outcome = MutationOutcome(changed=bool(blocks))
        for block in blocks:
            sync = self.calendar.unlink_on_delete(block)
            if sync.warning:
                outcome.warnings.append(f"{block.title}: {sync.warning}")
        block_store.delete_blocks(
            self.db,
            blocks,
            logs=[
                block_store.action_log(
                    "day_cleared",
                    day=day,
                    payload={"blocks": len(blocks)},
                    reason="All time blocks deleted for day",
                )
            ],
        )
        logger.info("Deleted %s blocks on %s", len(blocks), day)
        outcome.reminders = self._after_change(day)
        return outcome

    def reset_statuses(self, day: date) -> MutationOutcome:
        """Day-wide reset: the only path from completed/skipped back to not_started."""
        blocks = block_store.load_blocks_for_day(self.db, day)
        now = self.clock()
        reset = [block for block in blocks if block.status != BlockStatus.NOT_STARTED]
        for block in reset:
            block.status = BlockStatus.NOT_STARTED
            block.touch(now)
        block_store.save_blocks(
            self.db,
            reset,
            logs=[
                block_store.action_log(
                    "day_reset",
                    day=day,
                    payload={"blocks_reset": len(reset)},
                    reason="Statuses reset for day",
                )
            ],
        )
        outcome = MutationOutcome(changed=bool(reset))
        outcome.reminders = self._after_change(day)
        return outcome

    def transition_status(self, block: TimeBlock, new_status: BlockStatus, *, force: bool = False) -> MutationOutcome:
        """Move one block along the state machine.

        Disallowed transitions (including any attempt to return a block to
        not_started) leave the block untouched and report ``changed=False``.
        ``force`` is the operator override for starting a block early.
        """
        new_status = BlockStatus(new_status)
        current = block.status
        now = self.clock()
        decision = decide_transition(
            current,
            new_status,
            start_time=block.start_time,
            end_time=block.end_time,
            now=now,
            force=force,
        )
        if not decision.allowed:
            logger.info("Ignored transition %s -> %s for block %s: %s", current.value, new_status.value, block.id, decision.reason)
            return MutationOutcome(block=block, changed=False, reason=decision.reason)

        block.status = new_status
        block.touch(now)
        block_store.save_block(
            self.db,
            block,
            log=block_store.action_log(
                "status_changed",
                block=block,
                payload={"from": current.value, "to": new_status.value, "forced": force},
                reason="Block status changed",
            ),
        )
        self._refresh_progress(block.scheduled_day)
        return MutationOutcome(block=block)

    def refresh_statuses(self, day: Optional[date] = None, now: Optional[datetime] = None) -> int:
        """Persist the clock-driven not_started -> in_progress transition; returns blocks changed."""
        now = now or self.clock()
        day = day or local_day(now, self.tz)
        started = []
        for block in block_store.load_blocks_for_day(self.db, day):
            status = automatic_status(block.status, start_time=block.start_time, end_time=block.end_time, now=now)
            if status != block.status:
                block.status = status
                block.touch(now)
                started.append(block)
        if not started:
            return 0
        block_store.save_blocks(
            self.db,
            started,
            logs=[
                block_store.action_log(
                    "status_changed",
                    block=block,
                    payload={"from": BlockStatus.NOT_STARTED.value, "to": BlockStatus.IN_PROGRESS.value, "automatic": True},
                    reason="Block interval started",
                )
                for block in started
            ],
        )
        self._refresh_progress(day)
        return len(started)

    def copy_blocks(self, source_day: date, target_day: date) -> List[TimeBlock]:
        """Clone a day's blocks onto another day at the same local clock times.

        Copies start not_started and unlinked. Any conflict aborts the whole copy.
        """
        source = block_store.load_blocks_for_day(self.db, source_day)
        planned: List[TimeBlock] = list(block_store.load_blocks_for_day(self.db, target_day))
        now = self.clock()
        copies: List[TimeBlock] = []
        conflicts: List[TimeBlock] = []
        for original in source:
            local_start = original.start_time.astimezone(self.tz)
            start = datetime.combine(target_day, local_start.time(), tzinfo=self.tz)
            fields = validate_block_fields(
                title=original.title,
                start_time=start,
                end_time=start + (original.end_time - original.start_time),
                notes=original.notes,
                category=original.category,
                icon=original.icon,
                tz=self.tz,
            )
            clashes = find_conflicts(fields.start_time, fields.end_time, planned, tz=self.tz)
            if clashes:
                conflicts.extend(clash for clash in clashes if clash not in conflicts)
                continue
            copy = TimeBlock(
                id=uuid4(),
                title=fields.title,
                start_time=fields.start_time,
                end_time=fields.end_time,
                scheduled_day=target_day,
                notes=fields.notes,
                category=fields.category,
                icon=fields.icon,
                created_at=now,
                updated_at=now,
            )
            copy.status = BlockStatus.NOT_STARTED
            copies.append(copy)
            planned.append(copy)
        if conflicts:
            raise ConflictError(conflicts, tz=self.tz)

        block_store.save_blocks(
            self.db,
            copies,
            logs=[
                block_store.action_log(
                    "day_copied",
                    day=target_day,
                    payload={"source_day": source_day.isoformat(), "blocks": len(copies)},
                    reason="Routine copied from another day",
                )
            ],
        )
        self._after_change(target_day)
        return copies

    def update_day_reflection(self, day: date, changes: Mapping[str, Any]) -> DailyProgress:
        """Apply rating, notes and viewed flag together in one commit.

        Keys left out of ``changes`` keep their stored value.
        """
        unknown = sorted(set(changes) - set(REFLECTION_FIELDS))
        if unknown:
            raise ValidationError([f"Field '{name}' cannot be edited" for name in unknown])
        rating = changes.get("day_rating")
        if rating is not None and not 1 <= rating <= 5:
            raise ValidationError(["Day rating must be between 1 and 5"])

        progress = block_store.load_or_create_progress(self.db, day)
        if "day_rating" in changes:
            progress.day_rating = rating
        if "day_notes" in changes:
            progress.day_notes = (changes["day_notes"] or "").strip() or None
        if "summary_viewed" in changes:
            progress.summary_viewed = bool(changes["summary_viewed"])
        progress.updated_at = self.clock()
        return block_store.save_progress(self.db, progress)

    def set_day_rating(self, day: date, rating: Optional[int]) -> DailyProgress:
        return self.update_day_reflection(day, {"day_rating": rating})

    def set_day_notes(self, day: date, notes: Optional[str]) -> DailyProgress:
        return self.update_day_reflection(day, {"day_notes": notes})

    def mark_summary_viewed(self, day: date) -> DailyProgress:
        return self.update_day_reflection(day, {"summary_viewed": True})

    def reconcile_calendar(self, blocks: Optional[Sequence[TimeBlock]] = None) -> ReconcileResult:
        return self.calendar.reconcile(blocks)

    # Internals

    def _refresh_progress(self, day: date, blocks: Optional[Sequence[TimeBlock]] = None) -> DailyProgress:
        if blocks is None:
            blocks = block_store.load_blocks_for_day(self.db, day)
        progress = block_store.load_or_create_progress(self.db, day)
        apply_snapshot(progress, aggregate(day, blocks))
        return block_store.save_progress(self.db, progress)

    def _after_change(self, day: date) -> ReminderResult:
        blocks = block_store.load_blocks_for_day(self.db, day)
        self._refresh_progress(day, blocks)
        return reschedule_day_reminders(
            self.db,
            day,
            blocks,
            request_id=self.request_id,
            service=self.reminders,
        )
