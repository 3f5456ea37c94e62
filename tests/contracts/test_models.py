from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from lifelog.events.models import (
    Event,
    EventCandidate,
    EventStatus,
    EventType,
    EventUpdate,
    Reminder,
    ReminderStatus,
    SourceType,
)

START = datetime(2026, 4, 10, 15, 0, tzinfo=UTC)


def _event(**overrides) -> Event:
    data = {
        "user_id": "user-1",
        "title": "Dentist appointment",
        "datetime": START,
        "type": "appointment",
        "confidence": 0.92,
        "status": "pending",
        "source_type": "voice",
        "source_id": "note-1",
        "source_text": "dentist on april 10 at 3pm",
    }
    data.update(overrides)
    return Event.model_validate(data)


def test_event_happy_path():
    event = _event()

    assert event.type == EventType.APPOINTMENT
    assert event.status == EventStatus.PENDING
    assert event.source_type == SourceType.VOICE
    assert event.user_confirmed is False
    assert event.user_modified is False
    assert event.version == 1
    assert event.awaiting_confirmation is True
    assert event.is_terminal is False


def test_event_enums_serialize_as_strings():
    dumped = _event().model_dump(mode="json")

    assert dumped["type"] == "appointment"
    assert dumped["status"] == "pending"


@pytest.mark.parametrize("confidence", [-0.1, 1.2])
def test_event_confidence_bounds(confidence):
    with pytest.raises(ValidationError):
        _event(confidence=confidence)


def test_event_rejects_blank_title():
    with pytest.raises(ValidationError, match="title cannot be empty"):
        _event(title="   ")


def test_event_rejects_unknown_status():
    with pytest.raises(ValidationError):
        _event(status="archived")


def test_completed_at_only_with_completed_status():
    with pytest.raises(ValidationError, match="completed_at"):
        _event(status="completed")

    with pytest.raises(ValidationError, match="completed_at"):
        _event(status="confirmed", completed_at=START)

    completed = _event(status="completed", completed_at=START)
    assert completed.is_terminal is True


def test_end_before_start_rejected():
    with pytest.raises(ValidationError, match="end_datetime"):
        _event(end_datetime=START - timedelta(minutes=1))


def test_datetimes_normalized_to_utc():
    pacific = timezone(timedelta(hours=-8))
    event = _event(datetime=datetime(2026, 4, 10, 7, 0, tzinfo=pacific))

    assert event.datetime == START
    assert event.datetime.tzinfo == UTC


def test_naive_datetime_taken_as_utc():
    event = _event(datetime=datetime(2026, 4, 10, 15, 0))

    assert event.datetime == START


def test_reminder_requires_positive_offset():
    with pytest.raises(ValidationError):
        Reminder(timing_minutes_before=0)

    reminder = Reminder(timing_minutes_before=60)
    assert reminder.status == ReminderStatus.SCHEDULED
    assert reminder.fire_time(START) == START - timedelta(hours=1)


def test_db_round_trip_preserves_fields():
    event = _event(
        participants=["Sam", "Alex"],
        location="Main St Dental",
        reminders=[Reminder(timing_minutes_before=60), Reminder(timing_minutes_before=1440)],
    )

    row = event.to_db_dict()
    assert json.loads(row["participants"]) == ["Sam", "Alex"]
    assert row["user_confirmed"] == 0

    restored = Event.from_db_row(row)
    assert restored.model_dump() == event.model_dump()


def test_recurrence_is_optional_and_round_trips():
    assert _event().recurrence is None

    until = datetime(2026, 6, 30, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    event = _event(recurrence="weekly", recurrence_end_date=until)
    assert event.recurrence_end_date == datetime(2026, 6, 30, 10, 0, tzinfo=UTC)

    restored = Event.from_db_row(event.to_db_dict())
    assert restored.recurrence == "weekly"
    assert restored.recurrence_end_date == event.recurrence_end_date

    assert EventUpdate(recurrence="monthly").changes() == {"recurrence": "monthly"}


def test_candidate_keeps_raw_type_and_confidence():
    candidate = EventCandidate.model_validate(
        {"type": "birthday", "confidence": "high", "title": " Party ", "datetime": START}
    )

    assert candidate.type == "birthday"
    assert candidate.confidence == "high"
    assert candidate.title == "Party"
    assert candidate.source_type == SourceType.TEXT


def test_update_only_reports_set_fields():
    update = EventUpdate(title="New title", location=None)

    assert update.changes() == {"title": "New title", "location": None}


@pytest.mark.parametrize("field", ["type", "confidence", "status", "source_type", "user_id"])
def test_update_rejects_non_editable_fields(field):
    with pytest.raises(ValidationError):
        EventUpdate.model_validate({field: "x"})
