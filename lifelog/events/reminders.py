"""
Reminder defaults and reminder status handling.

The default table is a pure function of event type. Everything else here
works on lists of Reminder and returns new lists; nothing is scheduled or
persisted from this module (push delivery belongs to the notification
scheduler, persistence to the repository).
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from types import MappingProxyType

from lifelog.config import REMINDER_MAX_MINUTES
from lifelog.events.errors import (
    InvalidReminderTimingError,
    ReminderNotFoundError,
    ReminderStateError,
    UnknownEventTypeError,
)
from lifelog.events.models import (
    Event,
    EventType,
    Reminder,
    ReminderStatus,
    ReminderType,
    utc_now,
)

WEEK = 10080
DAY = 1440
HOUR = 60

DEFAULT_REMINDER_MINUTES: MappingProxyType[EventType, tuple[int, ...]] = MappingProxyType(
    {
        EventType.APPOINTMENT: (WEEK, DAY, HOUR),
        EventType.MEETING: (DAY, HOUR, 15),
        EventType.INTENTION: (DAY,),
        EventType.PLAN: (WEEK, DAY),
        EventType.REMINDER: (HOUR,),
        EventType.TODO: (DAY, HOUR),
    }
)

PRESET_OPTIONS: tuple[tuple[str, int], ...] = (
    ("15 minutes before", 15),
    ("30 minutes before", 30),
    ("1 hour before", 60),
    ("2 hours before", 120),
    ("1 day before", 1440),
    ("2 days before", 2880),
    ("1 week before", 10080),
)


def coerce_event_type(event_type: object) -> EventType:
    """Accept an EventType or its string value; anything else is unknown."""
    if isinstance(event_type, EventType):
        return event_type
    if isinstance(event_type, str):
        try:
            return EventType(event_type)
        except ValueError:
            raise UnknownEventTypeError(event_type) from None
    raise UnknownEventTypeError(event_type)


def default_reminder_offsets(event_type: EventType | str) -> list[int]:
    """Default reminder offsets (minutes before start) for an event type."""
    return list(DEFAULT_REMINDER_MINUTES[coerce_event_type(event_type)])


def build_smart_reminders(
    event_type: EventType | str,
    event_datetime: dt.datetime | None = None,
    now: dt.datetime | None = None,
) -> list[Reminder]:
    """
    Create scheduled smart reminders for an event type.

    When the event start is known, offsets that would already have fired by
    `now` are dropped rather than created as scheduled-in-the-past.
    """
    reminders = [
        Reminder(type=ReminderType.SMART, timing_minutes_before=minutes)
        for minutes in default_reminder_offsets(event_type)
    ]
    if event_datetime is None:
        return reminders

    now = now or utc_now()
    return [r for r in reminders if r.fire_time(event_datetime) > now]


def validate_reminder_timing(
    timing_minutes: int, event_datetime: dt.datetime, now: dt.datetime | None = None
) -> None:
    """
    Raises:
        InvalidReminderTimingError: timing not positive, more than 4 weeks,
            or the reminder would fire in the past
    """
    if isinstance(timing_minutes, bool) or not isinstance(timing_minutes, int):
        raise InvalidReminderTimingError(timing_minutes, "must be a whole number of minutes")
    if timing_minutes <= 0:
        raise InvalidReminderTimingError(timing_minutes, "must be positive")
    if timing_minutes > REMINDER_MAX_MINUTES:
        raise InvalidReminderTimingError(timing_minutes, "cannot be more than 4 weeks before")

    now = now or utc_now()
    if event_datetime - dt.timedelta(minutes=timing_minutes) <= now:
        raise InvalidReminderTimingError(timing_minutes, "would fire in the past")


def create_custom_reminder(
    timing_minutes: int, event_datetime: dt.datetime, now: dt.datetime | None = None
) -> Reminder:
    validate_reminder_timing(timing_minutes, event_datetime, now)
    return Reminder(type=ReminderType.CUSTOM, timing_minutes_before=timing_minutes)


def cancel_scheduled(reminders: Iterable[Reminder]) -> list[Reminder]:
    """Every scheduled reminder becomes cancelled; sent and cancelled ones are kept as-is."""
    return [
        r.model_copy(update={"status": ReminderStatus.CANCELLED})
        if r.status == ReminderStatus.SCHEDULED
        else r
        for r in reminders
    ]


def cancel_elapsed(
    reminders: Iterable[Reminder], event_datetime: dt.datetime, now: dt.datetime
) -> list[Reminder]:
    """Scheduled reminders whose fire time is not after `now` become cancelled."""
    return [
        r.model_copy(update={"status": ReminderStatus.CANCELLED})
        if r.status == ReminderStatus.SCHEDULED and r.fire_time(event_datetime) <= now
        else r
        for r in reminders
    ]


def mark_sent(reminders: Iterable[Reminder], reminder_id: str) -> list[Reminder]:
    """
    Record delivery of a reminder reported by the notification scheduler.

    Raises:
        ReminderNotFoundError: no reminder with that id
        ReminderStateError: the reminder is not scheduled (already sent or cancelled)
    """
    updated: list[Reminder] = []
    found = False
    for r in reminders:
        if r.id == reminder_id:
            found = True
            if r.status != ReminderStatus.SCHEDULED:
                raise ReminderStateError(reminder_id, r.status.value)
            r = r.model_copy(update={"status": ReminderStatus.SENT})
        updated.append(r)

    if not found:
        raise ReminderNotFoundError(reminder_id)
    return updated


def due_reminders(
    event: Event, now: dt.datetime | None = None
) -> list[tuple[Reminder, dt.datetime]]:
    """
    Reminders the scheduler should still deliver, with their fire times, soonest first.

    Terminal events have nothing to deliver. Reminders whose fire time has
    already passed are skipped.
    """
    if event.is_terminal:
        return []

    now = now or utc_now()
    pending = [
        (r, r.fire_time(event.datetime))
        for r in event.reminders
        if r.status == ReminderStatus.SCHEDULED
    ]
    return sorted(
        ((r, fire_at) for r, fire_at in pending if fire_at > now),
        key=lambda pair: pair[1],
    )


def sort_reminders(reminders: Iterable[Reminder]) -> list[Reminder]:
    """Earliest-firing first (largest offset first)."""
    return sorted(reminders, key=lambda r: r.timing_minutes_before, reverse=True)


def format_reminder_timing(timing_minutes: int) -> str:
    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}{'' if n == 1 else 's'} before"

    if timing_minutes < HOUR:
        return plural(timing_minutes, "minute")
    if timing_minutes < DAY:
        return plural(timing_minutes // HOUR, "hour")
    if timing_minutes < WEEK:
        return plural(timing_minutes // DAY, "day")
    return plural(timing_minutes // WEEK, "week")


def count_by_status(reminders: Iterable[Reminder]) -> dict[str, int]:
    counts = {status.value: 0 for status in ReminderStatus}
    for r in reminders:
        counts[r.status.value] += 1
    return counts
