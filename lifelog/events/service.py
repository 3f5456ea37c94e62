"""Events service layer - facade between API routes and repository.

Centralizes ownership checks, admission filtering, classification and
lifecycle transitions. Every write goes through the repository's optimistic
version check; conflicts are surfaced, never retried here.
"""

from __future__ import annotations

import datetime as dt
from typing import Any

from lifelog.config import CONFLICT_WINDOW_DAYS, REMINDER_MAX_PER_EVENT, UPCOMING_EVENTS_LIMIT
from lifelog.events.classifier import classify_candidate
from lifelog.events.conflicts import EventConflict, find_conflicts
from lifelog.events.errors import InvalidReminderTimingError, TerminalStateError
from lifelog.events.extraction_config import EventExtractionConfig, admits
from lifelog.events.lifecycle import EventAction, apply_action
from lifelog.events.models import (
    Event,
    EventCandidate,
    EventCreate,
    EventStatus,
    EventType,
    EventUpdate,
    Reminder,
    ReminderStatus,
    SourceType,
    ensure_utc,
    utc_now,
)
from lifelog.events.reminders import (
    build_smart_reminders,
    create_custom_reminder,
    due_reminders,
    mark_sent,
)
from lifelog.events.repository import EventRepository, ExtractionConfigRepository
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import counter, log_event, time_block

logger = get_logger(__name__)


class EventsService:
    """Service layer for event operations.

    All methods that accept event_id + user_id enforce ownership.
    Returns None when the event is not found or not owned.
    """

    @staticmethod
    def get_event(event_id: str, user_id: str) -> Event | None:
        """Get an event if owned by user. Returns None if not found or not owned."""
        event = EventRepository.get_by_id(event_id)
        if not event or event.user_id != user_id:
            return None
        return event

    @staticmethod
    def ingest_candidate(
        user_id: str,
        candidate: EventCandidate,
        config: EventExtractionConfig | None = None,
        now: dt.datetime | None = None,
    ) -> Event | None:
        """Classify and store an extracted candidate.

        Returns:
            The stored event, or None when the admission filter drops it

        Raises:
            UnknownEventTypeError / InvalidConfidenceError: bad candidate
        """
        now = now or utc_now()
        classification = classify_candidate(candidate.type, candidate.confidence)

        config = config or ExtractionConfigRepository.get_current()
        admitted, reason = admits(
            config.effective_settings(), classification.event_type, classification.confidence
        )
        if not admitted:
            counter("ingest.filtered")
            logger.info(
                "Dropped %s candidate for user %s: %s",
                classification.event_type.value,
                user_id,
                reason,
            )
            return None

        event = Event(
            user_id=user_id,
            title=candidate.title,
            description=candidate.description,
            datetime=candidate.datetime,
            end_datetime=candidate.end_datetime,
            is_all_day=candidate.is_all_day,
            location=candidate.location,
            participants=candidate.participants,
            recurrence=candidate.recurrence,
            recurrence_end_date=candidate.recurrence_end_date,
            type=classification.event_type,
            confidence=classification.confidence,
            status=classification.status,
            source_type=candidate.source_type,
            source_id=candidate.source_id,
            source_text=candidate.source_text,
            reminders=build_smart_reminders(classification.event_type, candidate.datetime, now),
            created_at=now,
            updated_at=now,
        )
        with time_block("events.ingest.persist.latency"):
            EventRepository.create(event)

        counter("ingest.created")
        log_event(
            "event.ingested",
            event_id=event.id,
            type=event.type.value,
            status=event.status.value,
            confidence=event.confidence,
            reminders=len(event.reminders),
        )
        return event

    @staticmethod
    def create_manual(event_create: EventCreate, now: dt.datetime | None = None) -> Event:
        """Create a user-entered event; it is confirmed from the start."""
        now = now or utc_now()
        event = Event(
            user_id=event_create.user_id,
            title=event_create.title,
            description=event_create.description,
            datetime=event_create.datetime,
            end_datetime=event_create.end_datetime,
            is_all_day=event_create.is_all_day,
            location=event_create.location,
            participants=event_create.participants,
            recurrence=event_create.recurrence,
            recurrence_end_date=event_create.recurrence_end_date,
            type=event_create.type,
            confidence=1.0,
            status=EventStatus.CONFIRMED,
            source_type=SourceType.MANUAL,
            user_confirmed=True,
            reminders=build_smart_reminders(event_create.type, event_create.datetime, now),
            created_at=now,
            updated_at=now,
        )
        EventRepository.create(event)
        counter("ingest.manual")
        return event

    @staticmethod
    def _transition(
        event_id: str,
        user_id: str,
        action: EventAction,
        now: dt.datetime | None = None,
        changes: dict[str, Any] | None = None,
    ) -> Event | None:
        event = EventsService.get_event(event_id, user_id)
        if not event:
            return None

        updated = apply_action(event, action, now=now, changes=changes)
        if updated is event:
            return event
        return EventRepository.save(updated, expected_version=event.version)

    @staticmethod
    def confirm(event_id: str, user_id: str, now: dt.datetime | None = None) -> Event | None:
        return EventsService._transition(event_id, user_id, EventAction.CONFIRM, now)

    @staticmethod
    def edit(
        event_id: str, user_id: str, updates: EventUpdate, now: dt.datetime | None = None
    ) -> Event | None:
        """Apply user edits. Classification and provenance are not editable."""
        return EventsService._transition(
            event_id, user_id, EventAction.EDIT, now, changes=updates.changes()
        )

    @staticmethod
    def complete(event_id: str, user_id: str, now: dt.datetime | None = None) -> Event | None:
        return EventsService._transition(event_id, user_id, EventAction.COMPLETE, now)

    @staticmethod
    def cancel(event_id: str, user_id: str, now: dt.datetime | None = None) -> Event | None:
        return EventsService._transition(event_id, user_id, EventAction.CANCEL, now)

    @staticmethod
    def add_custom_reminder(
        event_id: str, user_id: str, timing_minutes: int, now: dt.datetime | None = None
    ) -> Event | None:
        """Attach a user-defined reminder to a non-terminal event.

        Raises:
            InvalidReminderTimingError: bad timing, or the event already has the maximum
            TerminalStateError: event is completed or cancelled
        """
        event = EventsService.get_event(event_id, user_id)
        if not event:
            return None

        if event.is_terminal:
            raise TerminalStateError(event.status.value, "add_reminder")
        scheduled = [r for r in event.reminders if r.status == ReminderStatus.SCHEDULED]
        if len(scheduled) >= REMINDER_MAX_PER_EVENT:
            raise InvalidReminderTimingError(
                timing_minutes,
                f"an event can have at most {REMINDER_MAX_PER_EVENT} scheduled reminders",
            )

        now = now or utc_now()
        reminder = create_custom_reminder(timing_minutes, event.datetime, now)
        updated = event.model_copy(
            update={"reminders": [*event.reminders, reminder], "updated_at": now}
        )
        return EventRepository.save(updated, expected_version=event.version)

    @staticmethod
    def mark_reminder_sent(
        event_id: str, user_id: str, reminder_id: str, now: dt.datetime | None = None
    ) -> Event | None:
        """Record scheduler delivery of one reminder.

        Raises:
            ReminderNotFoundError: unknown reminder id
            ReminderStateError: reminder is not scheduled
            TerminalStateError: event is completed or cancelled
        """
        event = EventsService.get_event(event_id, user_id)
        if not event:
            return None
        if event.is_terminal:
            raise TerminalStateError(event.status.value, "mark_reminder_sent")

        updated = event.model_copy(
            update={
                "reminders": mark_sent(event.reminders, reminder_id),
                "updated_at": now or utc_now(),
            }
        )
        counter("reminders.sent")
        return EventRepository.save(updated, expected_version=event.version)

    @staticmethod
    def due_reminders(
        event_id: str, user_id: str, now: dt.datetime | None = None
    ) -> list[tuple[Reminder, dt.datetime]] | None:
        """Scheduled reminders still to deliver for one event, soonest first."""
        event = EventsService.get_event(event_id, user_id)
        if not event:
            return None
        return due_reminders(event, now)

    @staticmethod
    def check_conflicts(
        user_id: str,
        start: dt.datetime,
        end: dt.datetime | None = None,
        is_all_day: bool = False,
        exclude_id: str | None = None,
    ) -> list[EventConflict]:
        """Conflicts a proposed slot would have with the user's pending/confirmed events."""
        if is_all_day:
            return []

        start = ensure_utc(start)
        window = dt.timedelta(days=CONFLICT_WINDOW_DAYS)
        nearby = EventRepository.list_in_window(user_id, start - window, start + window)
        return find_conflicts(start, end, is_all_day, nearby, exclude_id=exclude_id)

    @staticmethod
    def detect_conflicts(event_id: str, user_id: str) -> list[EventConflict] | None:
        """Conflicts for a stored event. Returns None if not found or not owned."""
        event = EventsService.get_event(event_id, user_id)
        if not event:
            return None
        return EventsService.check_conflicts(
            user_id,
            event.datetime,
            event.end_datetime,
            event.is_all_day,
            exclude_id=event.id,
        )

    @staticmethod
    def list_events(
        user_id: str,
        status: list[EventStatus] | None = None,
        event_type: EventType | None = None,
        source_type: SourceType | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[Event], int]:
        """List events for a user.

        Returns:
            (events, total_count)
        """
        events = EventRepository.list_by_user(
            user_id,
            status=status,
            event_type=event_type,
            source_type=source_type,
            limit=limit,
            offset=offset,
        )
        total = EventRepository.count_by_user(user_id, status, event_type, source_type)
        return events, total

    @staticmethod
    def list_upcoming(
        user_id: str, now: dt.datetime | None = None, limit: int = UPCOMING_EVENTS_LIMIT
    ) -> list[Event]:
        return EventRepository.list_upcoming(user_id, now=now, limit=limit)

    @staticmethod
    def list_review_queue(user_id: str, limit: int = 100) -> list[Event]:
        return EventRepository.list_awaiting_review(user_id, limit=limit)

    @staticmethod
    def confirmation_stats(user_id: str) -> dict[str, Any]:
        """Confirmation counts and rate for the dashboard.

        The rate is confirmed / (awaiting + confirmed + cancelled) as a
        rounded percentage; 0 when there is nothing to count.
        """
        awaiting = EventRepository.count_awaiting_confirmation(user_id)
        confirmed = EventRepository.count_user_confirmed(user_id)
        by_status = EventRepository.count_by_status(user_id)
        by_type = EventRepository.count_by_type(user_id)
        cancelled = by_status.get(EventStatus.CANCELLED.value, 0)

        # A confirmed-then-cancelled event counts in both buckets
        total = awaiting + confirmed + cancelled
        rate = int(confirmed * 100 / total + 0.5) if total else 0

        return {
            "awaiting": awaiting,
            "confirmed": confirmed,
            "cancelled": cancelled,
            "confirmation_rate": rate,
            "by_status": {s.value: by_status.get(s.value, 0) for s in EventStatus},
            "by_type": {t.value: by_type.get(t.value, 0) for t in EventType},
        }
