"""
Lifelog Events module - confidence classification, lifecycle and reminders.
"""

from lifelog.events.classifier import Classification, classify_candidate
from lifelog.events.conflicts import (
    ConflictSeverity,
    ConflictType,
    EventConflict,
    find_conflicts,
)
from lifelog.events.errors import (
    ConcurrentModificationError,
    EventError,
    IllegalTransitionError,
    InvalidConfidenceError,
    InvalidEventInputError,
    InvalidReminderTimingError,
    ReminderNotFoundError,
    ReminderStateError,
    TerminalStateError,
    UnknownEventTypeError,
)
from lifelog.events.extraction_config import (
    EventExtractionConfig,
    EventExtractionSettings,
    admits,
)
from lifelog.events.lifecycle import EventAction, allowed_actions, apply_action
from lifelog.events.models import (
    Event,
    EventCandidate,
    EventCreate,
    EventStatus,
    EventType,
    EventUpdate,
    Reminder,
    ReminderStatus,
    ReminderType,
    SourceType,
)
from lifelog.events.reminders import (
    DEFAULT_REMINDER_MINUTES,
    coerce_event_type,
    format_reminder_timing,
)
from lifelog.events.repository import EventRepository, ExtractionConfigRepository
from lifelog.events.service import EventsService

__all__ = [
    # Models
    "Event",
    "EventCandidate",
    "EventCreate",
    "EventStatus",
    "EventType",
    "EventUpdate",
    "Reminder",
    "ReminderStatus",
    "ReminderType",
    "SourceType",
    # Classifier
    "Classification",
    "classify_candidate",
    # Conflicts
    "ConflictSeverity",
    "ConflictType",
    "EventConflict",
    "find_conflicts",
    # Lifecycle
    "EventAction",
    "allowed_actions",
    "apply_action",
    # Reminders
    "DEFAULT_REMINDER_MINUTES",
    "coerce_event_type",
    "format_reminder_timing",
    # Extraction config
    "EventExtractionConfig",
    "EventExtractionSettings",
    "admits",
    # Persistence and service
    "EventRepository",
    "ExtractionConfigRepository",
    "EventsService",
    # Errors
    "ConcurrentModificationError",
    "EventError",
    "IllegalTransitionError",
    "InvalidConfidenceError",
    "InvalidEventInputError",
    "InvalidReminderTimingError",
    "ReminderNotFoundError",
    "ReminderStateError",
    "TerminalStateError",
    "UnknownEventTypeError",
]
