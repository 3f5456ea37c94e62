"""
Confidence classifier - initial status and default reminders for extracted events.

The extraction prompt scores confidence by how temporally specific the source
text is:

    0.9 - 1.0  explicit date and time     "Dec 26, 2025 at 3:00 PM"   -> pending
    0.7 - 0.9  relative date with time    "tomorrow at 3 PM"          -> pending
    0.5 - 0.7  vague time reference       "sometime next week"        -> draft
    0.3 - 0.5  very vague reference       "soon", "later"             -> draft
    0.0 - 0.3  no temporal information    "I should call mom"         -> draft

Pending events are shown in the calendar directly; drafts go to the review
queue first. The score is taken as given and never recomputed here.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from lifelog.config import CONFIDENCE_THRESHOLD
from lifelog.events.errors import InvalidConfidenceError
from lifelog.events.models import EventStatus, EventType
from lifelog.events.reminders import coerce_event_type, default_reminder_offsets
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import counter

logger = get_logger(__name__)


@dataclass(frozen=True)
class Classification:
    """Initial status plus default reminder offsets (minutes before start)."""

    event_type: EventType
    confidence: float
    status: EventStatus
    reminders: list[int] = field(default_factory=list)


def validate_confidence(confidence: object) -> float:
    """Return confidence as float, or raise InvalidConfidenceError."""
    if isinstance(confidence, bool) or not isinstance(confidence, int | float):
        raise InvalidConfidenceError(confidence)
    value = float(confidence)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise InvalidConfidenceError(confidence)
    return value


def status_for_confidence(confidence: float) -> EventStatus:
    return EventStatus.PENDING if confidence >= CONFIDENCE_THRESHOLD else EventStatus.DRAFT


def classify_candidate(event_type: EventType | str, confidence: object) -> Classification:
    """
    Map an extracted candidate's type and confidence to its initial status and reminders.

    Args:
        event_type: One of the six event types (enum or string value)
        confidence: Extraction confidence in [0, 1]

    Returns:
        Classification with status pending (>= 0.7) or draft (< 0.7)

    Raises:
        UnknownEventTypeError: type is not one of the six event types
        InvalidConfidenceError: confidence is not a number in [0, 1]
    """
    resolved_type = coerce_event_type(event_type)
    value = validate_confidence(confidence)
    status = status_for_confidence(value)

    counter(f"classifier.{status.value}")
    logger.debug(
        "Classified %s candidate (confidence=%.2f) as %s", resolved_type.value, value, status.value
    )

    return Classification(
        event_type=resolved_type,
        confidence=value,
        status=status,
        reminders=default_reminder_offsets(resolved_type),
    )
