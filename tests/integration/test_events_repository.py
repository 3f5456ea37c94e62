"""Integration tests for EventRepository and ExtractionConfigRepository (real SQLite)"""

from __future__ import annotations

from datetime import timedelta

import pytest

from lifelog.events.errors import ConcurrentModificationError
from lifelog.events.extraction_config import EventExtractionConfig, EventExtractionSettings
from lifelog.events.models import Event, EventStatus, EventType, Reminder, SourceType
from lifelog.events.repository import EventRepository, ExtractionConfigRepository
from lifelog.observability.telemetry import get_counter


def _event(start, **overrides) -> Event:
    data = {
        "user_id": "user-1",
        "title": "Coffee with Sam",
        "datetime": start,
        "type": EventType.PLAN,
        "confidence": 0.8,
        "status": EventStatus.PENDING,
        "source_type": SourceType.TEXT,
    }
    data.update(overrides)
    return Event.model_validate(data)


def test_create_and_get(next_week):
    event = _event(next_week, reminders=[Reminder(timing_minutes_before=1440)])
    EventRepository.create(event)

    stored = EventRepository.get_by_id(event.id)

    assert stored is not None
    assert stored.model_dump() == event.model_dump()


def test_get_missing_returns_none():
    assert EventRepository.get_by_id("does-not-exist") is None


def test_save_bumps_version(next_week):
    event = EventRepository.create(_event(next_week))

    saved = EventRepository.save(
        event.model_copy(update={"title": "Coffee with Sam and Alex"}), expected_version=1
    )

    assert saved.version == 2
    reloaded = EventRepository.get_by_id(event.id)
    assert reloaded.title == "Coffee with Sam and Alex"
    assert reloaded.version == 2


def test_save_with_stale_version_conflicts(next_week):
    event = EventRepository.create(_event(next_week))
    EventRepository.save(event.model_copy(update={"title": "First writer"}), expected_version=1)

    with pytest.raises(ConcurrentModificationError):
        EventRepository.save(event.model_copy(update={"title": "Second writer"}), expected_version=1)

    assert EventRepository.get_by_id(event.id).title == "First writer"
    assert get_counter("repository.version_conflicts") == 1


def test_list_by_user_filters_and_pages(next_week):
    for i in range(3):
        EventRepository.create(_event(next_week + timedelta(days=i), title=f"Plan {i}"))
    EventRepository.create(
        _event(next_week, type=EventType.TODO, status=EventStatus.DRAFT, confidence=0.3)
    )
    EventRepository.create(_event(next_week, user_id="someone-else"))

    everything = EventRepository.list_by_user("user-1")
    assert len(everything) == 4
    assert everything[0].title == "Plan 2"

    drafts = EventRepository.list_by_user("user-1", status=[EventStatus.DRAFT])
    assert [e.type for e in drafts] == [EventType.TODO]

    plans = EventRepository.list_by_user("user-1", event_type=EventType.PLAN, limit=2, offset=1)
    assert [e.title for e in plans] == ["Plan 1", "Plan 0"]

    assert EventRepository.count_by_user("user-1") == 4
    assert EventRepository.count_by_user("user-1", source_type=SourceType.VOICE) == 0


def test_counts_by_status_and_type(next_week):
    EventRepository.create(_event(next_week))
    EventRepository.create(_event(next_week, status=EventStatus.DRAFT, confidence=0.2))
    EventRepository.create(_event(next_week, type=EventType.MEETING))

    assert EventRepository.count_by_status("user-1") == {"pending": 2, "draft": 1}
    assert EventRepository.count_by_type("user-1") == {"plan": 2, "meeting": 1}


def test_list_upcoming(now):
    soon = EventRepository.create(_event(now + timedelta(hours=2), title="Soon"))
    later = EventRepository.create(
        _event(now + timedelta(days=3), title="Later", status=EventStatus.CONFIRMED)
    )
    EventRepository.create(_event(now - timedelta(hours=1), title="Past"))
    EventRepository.create(
        _event(now + timedelta(hours=1), title="Draft", status=EventStatus.DRAFT, confidence=0.4)
    )
    EventRepository.create(
        _event(now + timedelta(hours=1), title="Cancelled", status=EventStatus.CANCELLED)
    )

    upcoming = EventRepository.list_upcoming("user-1", now=now)

    assert [e.id for e in upcoming] == [soon.id, later.id]


def test_list_upcoming_limit(now):
    for i in range(7):
        EventRepository.create(_event(now + timedelta(days=i + 1), title=f"Plan {i}"))

    upcoming = EventRepository.list_upcoming("user-1", now=now)

    assert [e.title for e in upcoming] == [f"Plan {i}" for i in range(5)]


def test_list_awaiting_review(next_week):
    pending = EventRepository.create(_event(next_week))
    draft = EventRepository.create(
        _event(next_week + timedelta(days=1), status=EventStatus.DRAFT, confidence=0.3)
    )
    EventRepository.create(_event(next_week, status=EventStatus.CONFIRMED, user_confirmed=True))

    queue = EventRepository.list_awaiting_review("user-1")

    assert [e.id for e in queue] == [draft.id, pending.id]
    assert EventRepository.count_awaiting_confirmation("user-1") == 2
    assert EventRepository.count_user_confirmed("user-1") == 1


def test_config_defaults_when_never_saved():
    assert ExtractionConfigRepository.get_stored() is None
    assert ExtractionConfigRepository.get_current().version == 0


def test_config_save_bumps_version_and_records_history():
    first = ExtractionConfigRepository.save(
        EventExtractionConfig(enable_dynamic_config=True), changed_by="admin-1"
    )
    second = ExtractionConfigRepository.save(
        first.model_copy(update={"settings": EventExtractionSettings(confidence_threshold=0.4)}),
        changed_by="admin-2",
        change_notes="raise floor",
    )

    assert (first.version, second.version) == (1, 2)

    current = ExtractionConfigRepository.get_current()
    assert current.version == 2
    assert current.updated_by == "admin-2"
    assert current.settings.confidence_threshold == 0.4

    history = ExtractionConfigRepository.list_versions()
    assert [h["version"] for h in history] == [2, 1]
    assert history[0]["previous_version"] == 1
    assert history[0]["change_notes"] == "raise floor"
    assert history[1]["previous_version"] is None
