"""Integration tests for EventsService (classification through persistence)"""

from __future__ import annotations

from datetime import timedelta

import pytest

from lifelog.events.conflicts import ConflictType
from lifelog.events.errors import (
    ConcurrentModificationError,
    IllegalTransitionError,
    InvalidConfidenceError,
    InvalidReminderTimingError,
    ReminderStateError,
    TerminalStateError,
    UnknownEventTypeError,
)
from lifelog.events.extraction_config import EventExtractionConfig, EventExtractionSettings
from lifelog.events.models import (
    EventCandidate,
    EventCreate,
    EventStatus,
    EventType,
    EventUpdate,
    ReminderStatus,
    ReminderType,
    SourceType,
)
from lifelog.events.repository import EventRepository, ExtractionConfigRepository
from lifelog.events.service import EventsService
from lifelog.observability.telemetry import get_counter

USER = "user-1"


def _candidate(start, **overrides) -> EventCandidate:
    data = {
        "type": "meeting",
        "confidence": 0.9,
        "title": "Project kickoff",
        "datetime": start,
        "source_type": "voice",
        "source_id": "voice-note-7",
        "source_text": "kickoff with the design team next monday at 10",
    }
    data.update(overrides)
    return EventCandidate.model_validate(data)


def _ingest(start, now, **overrides):
    return EventsService.ingest_candidate(USER, _candidate(start, **overrides), now=now)


def test_ingest_high_confidence_is_pending(now, next_week):
    event = _ingest(next_week, now)

    assert event.status == EventStatus.PENDING
    assert event.type == EventType.MEETING
    assert event.confidence == 0.9
    assert event.source_type == SourceType.VOICE
    assert [r.timing_minutes_before for r in event.reminders] == [1440, 60, 15]
    assert all(r.type == ReminderType.SMART for r in event.reminders)
    assert EventRepository.get_by_id(event.id) is not None
    assert get_counter("ingest.created") == 1


def test_ingest_boundary_confidence_is_pending(now, next_week):
    assert _ingest(next_week, now, confidence=0.7).status == EventStatus.PENDING


def test_ingest_low_confidence_is_draft_in_review_queue(now, next_week):
    event = _ingest(next_week, now, type="intention", confidence=0.4, title="Call mom")

    assert event.status == EventStatus.DRAFT
    assert [r.timing_minutes_before for r in event.reminders] == [1440]
    assert [e.id for e in EventsService.list_review_queue(USER)] == [event.id]


def test_ingest_suppresses_elapsed_reminders(now):
    event = _ingest(now + timedelta(days=2), now, type="appointment")

    assert [r.timing_minutes_before for r in event.reminders] == [1440, 60]


def test_ingest_rejects_bad_candidates(now, next_week):
    with pytest.raises(UnknownEventTypeError):
        _ingest(next_week, now, type="birthday")
    with pytest.raises(InvalidConfidenceError):
        _ingest(next_week, now, confidence=1.5)

    assert EventRepository.count_by_user(USER) == 0


def test_ingest_admission_filter(now, next_week):
    config = EventExtractionConfig(
        enable_dynamic_config=True,
        settings=EventExtractionSettings(
            confidence_threshold=0.5, enabled_event_types=[EventType.MEETING]
        ),
    )

    assert EventsService.ingest_candidate(USER, _candidate(next_week, type="todo"), config, now) is None
    assert (
        EventsService.ingest_candidate(USER, _candidate(next_week, confidence=0.45), config, now)
        is None
    )
    kept = EventsService.ingest_candidate(USER, _candidate(next_week, confidence=0.55), config, now)

    assert kept.status == EventStatus.DRAFT
    assert get_counter("ingest.filtered") == 2


def test_ingest_uses_stored_config(now, next_week):
    ExtractionConfigRepository.save(
        EventExtractionConfig(
            enable_dynamic_config=True,
            settings=EventExtractionSettings(enabled_event_types=[EventType.TODO]),
        ),
        changed_by="admin",
    )

    assert _ingest(next_week, now) is None
    assert _ingest(next_week, now, type="todo") is not None


def test_manual_event_starts_confirmed(now, next_week):
    event = EventsService.create_manual(
        EventCreate(user_id=USER, title="Gym", datetime=next_week, type=EventType.PLAN), now=now
    )

    assert event.status == EventStatus.CONFIRMED
    assert event.user_confirmed is True
    assert event.confidence == 1.0
    assert event.source_type == SourceType.MANUAL
    assert [r.timing_minutes_before for r in event.reminders] == [10080, 1440]


def test_draft_confirm_then_complete(now, next_week):
    draft = _ingest(next_week, now, confidence=0.5)

    confirmed = EventsService.confirm(draft.id, USER, now=now)
    assert confirmed.status == EventStatus.CONFIRMED
    assert confirmed.completed_at is None
    assert confirmed.version == 2

    done_at = next_week + timedelta(hours=1)
    completed = EventsService.complete(draft.id, USER, now=done_at)
    assert completed.status == EventStatus.COMPLETED
    assert completed.completed_at == done_at
    assert EventRepository.get_by_id(draft.id).version == 3


def test_reconfirm_does_not_write(now, next_week):
    event = _ingest(next_week, now)
    EventsService.confirm(event.id, USER, now=now)

    again = EventsService.confirm(event.id, USER, now=now + timedelta(minutes=5))

    assert again.version == 2
    assert again.user_confirmed is True


def test_complete_pending_is_illegal(now, next_week):
    event = _ingest(next_week, now)

    with pytest.raises(IllegalTransitionError) as exc_info:
        EventsService.complete(event.id, USER, now=now)

    assert exc_info.value.allowed_actions == ["cancel", "confirm", "edit"]
    assert EventRepository.get_by_id(event.id).status == EventStatus.PENDING


def test_cancel_then_complete_is_terminal(now, next_week):
    event = _ingest(next_week, now)

    cancelled = EventsService.cancel(event.id, USER, now=now)
    assert cancelled.status == EventStatus.CANCELLED
    assert {r.status for r in cancelled.reminders} == {ReminderStatus.CANCELLED}

    with pytest.raises(TerminalStateError):
        EventsService.complete(event.id, USER, now=now)


def test_edit_flags_user_modified(now, next_week):
    event = _ingest(next_week, now)

    edited = EventsService.edit(
        event.id, USER, EventUpdate(title="Kickoff (moved)", location="Room 2"), now=now
    )

    assert edited.status == EventStatus.PENDING
    assert edited.user_modified is True
    assert edited.title == "Kickoff (moved)"
    assert edited.confidence == 0.9


def test_other_users_get_none(now, next_week):
    event = _ingest(next_week, now)

    assert EventsService.get_event(event.id, "intruder") is None
    assert EventsService.confirm(event.id, "intruder", now=now) is None
    assert EventsService.cancel(event.id, "intruder", now=now) is None
    assert EventsService.add_custom_reminder(event.id, "intruder", 30, now=now) is None
    assert EventRepository.get_by_id(event.id).status == EventStatus.PENDING


def test_stale_write_surfaces_conflict(now, next_week, monkeypatch):
    event = _ingest(next_week, now)
    stale = EventRepository.get_by_id(event.id)
    EventsService.confirm(event.id, USER, now=now)

    # Simulate a second writer that read before the confirm landed
    monkeypatch.setattr(EventRepository, "get_by_id", staticmethod(lambda _id: stale))

    with pytest.raises(ConcurrentModificationError):
        EventsService.cancel(event.id, USER, now=now)


def test_custom_reminders(now, next_week):
    event = _ingest(next_week, now)

    updated = EventsService.add_custom_reminder(event.id, USER, 120, now=now)

    custom = [r for r in updated.reminders if r.type == ReminderType.CUSTOM]
    assert [r.timing_minutes_before for r in custom] == [120]

    with pytest.raises(InvalidReminderTimingError):
        EventsService.add_custom_reminder(event.id, USER, 40321, now=now)


def test_custom_reminder_on_terminal_event(now, next_week):
    event = _ingest(next_week, now)
    EventsService.cancel(event.id, USER, now=now)

    with pytest.raises(TerminalStateError):
        EventsService.add_custom_reminder(event.id, USER, 30, now=now)


def test_custom_reminder_limit(now, next_week):
    event = _ingest(next_week, now)
    for minutes in range(20, 27):
        EventsService.add_custom_reminder(event.id, USER, minutes, now=now)

    with pytest.raises(InvalidReminderTimingError, match="at most"):
        EventsService.add_custom_reminder(event.id, USER, 30, now=now)


def test_mark_reminder_sent(now, next_week):
    event = _ingest(next_week, now)
    reminder_id = event.reminders[0].id

    updated = EventsService.mark_reminder_sent(event.id, USER, reminder_id, now=now)
    assert updated.reminders[0].status == ReminderStatus.SENT

    with pytest.raises(ReminderStateError):
        EventsService.mark_reminder_sent(event.id, USER, reminder_id, now=now)


def test_list_events_and_upcoming(now):
    first = _ingest(now + timedelta(hours=3), now)
    second = _ingest(now + timedelta(days=2), now, type="todo")
    _ingest(now + timedelta(days=1), now, confidence=0.2)

    events, total = EventsService.list_events(USER)
    assert total == 3
    assert len(events) == 3

    todos, todo_total = EventsService.list_events(USER, event_type=EventType.TODO)
    assert todo_total == 1
    assert todos[0].id == second.id

    upcoming = EventsService.list_upcoming(USER, now=now)
    assert [e.id for e in upcoming] == [first.id, second.id]


def test_confirmation_stats(now, next_week):
    a = _ingest(next_week, now)
    b = _ingest(next_week, now)
    c = _ingest(next_week, now, type="todo", confidence=0.3)
    _ingest(next_week, now, type="todo")
    EventsService.confirm(a.id, USER, now=now)
    EventsService.confirm(b.id, USER, now=now)
    EventsService.cancel(c.id, USER, now=now)

    stats = EventsService.confirmation_stats(USER)

    assert stats["awaiting"] == 1
    assert stats["confirmed"] == 2
    assert stats["cancelled"] == 1
    assert stats["confirmation_rate"] == 50
    assert stats["by_status"] == {
        "draft": 0,
        "pending": 1,
        "confirmed": 2,
        "completed": 0,
        "cancelled": 1,
    }
    assert stats["by_type"]["meeting"] == 2
    assert stats["by_type"]["todo"] == 2


def test_confirmation_stats_empty():
    stats = EventsService.confirmation_stats(USER)

    assert stats["confirmation_rate"] == 0
    assert stats["awaiting"] == 0


def test_custom_reminder_limit_counts_only_scheduled(now, next_week):
    event = _ingest(next_week, now)
    for minutes in range(20, 27):
        EventsService.add_custom_reminder(event.id, USER, minutes, now=now)
    with pytest.raises(InvalidReminderTimingError):
        EventsService.add_custom_reminder(event.id, USER, 30, now=now)

    EventsService.mark_reminder_sent(event.id, USER, event.reminders[0].id, now=now)
    updated = EventsService.add_custom_reminder(event.id, USER, 30, now=now)

    assert len(updated.reminders) == 11
    assert sum(r.status == ReminderStatus.SCHEDULED for r in updated.reminders) == 10


def test_mark_reminder_sent_on_terminal_event(now, next_week):
    event = _ingest(next_week, now)
    EventsService.confirm(event.id, USER, now=now)
    EventsService.complete(event.id, USER, now=now)

    with pytest.raises(TerminalStateError):
        EventsService.mark_reminder_sent(event.id, USER, event.reminders[0].id, now=now)

    assert EventsService.due_reminders(event.id, USER, now=now) == []
    assert get_counter("reminders.sent") == 0


def test_due_reminders_soonest_first(now, next_week):
    event = _ingest(next_week, now)

    due = EventsService.due_reminders(event.id, USER, now=now)
    assert [r.timing_minutes_before for r, _ in due] == [1440, 60, 15]
    assert due[0][1] == next_week - timedelta(days=1)

    EventsService.mark_reminder_sent(event.id, USER, due[0][0].id, now=now)
    due = EventsService.due_reminders(event.id, USER, now=now)
    assert [r.timing_minutes_before for r, _ in due] == [60, 15]

    assert EventsService.due_reminders(event.id, "someone-else", now=now) is None


def test_detect_conflicts_with_pending_and_confirmed_only(now, next_week):
    manual = EventsService.create_manual(
        EventCreate(user_id=USER, title="Dentist", datetime=next_week, type=EventType.APPOINTMENT),
        now=now,
    )
    pending = _ingest(next_week + timedelta(minutes=30), now)
    _ingest(next_week, now, confidence=0.3)  # draft
    cancelled = _ingest(next_week, now)
    EventsService.cancel(cancelled.id, USER, now=now)
    _ingest(next_week + timedelta(days=8), now)  # outside the window
    EventsService.ingest_candidate("user-2", _candidate(next_week), now=now)

    conflicts = EventsService.detect_conflicts(pending.id, USER)

    assert [(c.conflicting_event_id, c.conflict_type) for c in conflicts] == [
        (manual.id, ConflictType.OVERLAP)
    ]
    assert EventsService.detect_conflicts(pending.id, "user-2") is None


def test_check_conflicts_for_proposed_slot(now, next_week):
    existing = _ingest(next_week, now)

    back_to_back = EventsService.check_conflicts(USER, next_week + timedelta(minutes=70))
    assert [c.conflict_type for c in back_to_back] == [ConflictType.BACK_TO_BACK]
    assert back_to_back[0].conflicting_event_id == existing.id

    assert EventsService.check_conflicts(USER, next_week, is_all_day=True) == []
    assert EventsService.check_conflicts(USER, next_week, exclude_id=existing.id) == []
