"""
Scheduling conflict detection.

Compares a proposed time slot against the user's pending and confirmed
events around it:

    overlap       time ranges intersect              -> error
    back_to_back  one ends less than 15 min before   -> warning
                  the other starts

All-day events never conflict. An event without an end time is treated as
lasting one hour. Conflicts are advisory; nothing here blocks a write.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from lifelog.config import BACK_TO_BACK_GAP_MINUTES, DEFAULT_EVENT_DURATION_MINUTES
from lifelog.events.models import Event, ensure_utc
from lifelog.observability.telemetry import counter


class ConflictType(str, Enum):
    OVERLAP = "overlap"
    BACK_TO_BACK = "back_to_back"


class ConflictSeverity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class EventConflict:
    conflicting_event_id: str
    conflicting_event_title: str
    conflict_type: ConflictType
    severity: ConflictSeverity
    message: str


def effective_end(start: dt.datetime, end: dt.datetime | None) -> dt.datetime:
    if end is not None:
        return end
    return start + dt.timedelta(minutes=DEFAULT_EVENT_DURATION_MINUTES)


def _clock(value: dt.datetime) -> str:
    """12-hour UTC wall time, e.g. "3:05 PM UTC"."""
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix} UTC"


def _overlap(start: dt.datetime, end: dt.datetime, other: Event) -> EventConflict | None:
    other_end = effective_end(other.datetime, other.end_datetime)
    if not (start < other_end and end > other.datetime):
        return None

    return EventConflict(
        conflicting_event_id=other.id,
        conflicting_event_title=other.title,
        conflict_type=ConflictType.OVERLAP,
        severity=ConflictSeverity.ERROR,
        message=f'Overlaps with "{other.title}" at {_clock(other.datetime)}',
    )


def _back_to_back(start: dt.datetime, end: dt.datetime, other: Event) -> EventConflict | None:
    other_end = effective_end(other.datetime, other.end_datetime)
    if end <= other.datetime:
        gap = other.datetime - end
    elif other_end <= start:
        gap = start - other_end
    else:
        return None

    gap_minutes = gap.total_seconds() / 60
    if gap_minutes >= BACK_TO_BACK_GAP_MINUTES:
        return None

    return EventConflict(
        conflicting_event_id=other.id,
        conflicting_event_title=other.title,
        conflict_type=ConflictType.BACK_TO_BACK,
        severity=ConflictSeverity.WARNING,
        message=(
            f'Only {int(gap_minutes)} min gap before "{other.title}". '
            "Consider adding buffer time."
        ),
    )


def find_conflicts(
    start: dt.datetime,
    end: dt.datetime | None,
    is_all_day: bool,
    existing: Iterable[Event],
    exclude_id: str | None = None,
) -> list[EventConflict]:
    """
    Conflicts between a proposed slot and existing events, in the order given.

    Each existing event yields at most one conflict; an overlap takes
    precedence over a back-to-back warning.
    """
    if is_all_day:
        return []

    start = ensure_utc(start)
    end = effective_end(start, ensure_utc(end))

    conflicts: list[EventConflict] = []
    for other in existing:
        if other.id == exclude_id or other.is_all_day:
            continue
        conflict = _overlap(start, end, other) or _back_to_back(start, end, other)
        if conflict:
            counter(f"conflicts.{conflict.conflict_type.value}")
            conflicts.append(conflict)

    return conflicts
