"""
Event domain models for the Lifelog assistant.

An Event is the structured unit produced from a voice note, text note,
photo, health or location record (or entered manually) and tracked through
its lifecycle. Confidence and provenance are fixed at creation; status,
user flags and reminder statuses change through the lifecycle module.
"""

from __future__ import annotations

import datetime as dt
import json
import uuid
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

UTC = dt.UTC


def utc_now() -> dt.datetime:
    """Return current UTC time as a timezone-aware datetime."""
    return dt.datetime.now(UTC)


def ensure_utc(value: dt.datetime | None) -> dt.datetime | None:
    """Normalize to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


class EventType(str, Enum):
    """Kind of event; drives the default reminder offsets."""

    APPOINTMENT = "appointment"  # Medical, services (dentist, haircut)
    MEETING = "meeting"  # Business meetings, video calls
    INTENTION = "intention"  # Personal goals ("I want to...")
    PLAN = "plan"  # Planned activities ("Going to...")
    REMINDER = "reminder"  # Things to remember
    TODO = "todo"  # Tasks and errands


class EventStatus(str, Enum):
    """Status of an event in the lifecycle."""

    DRAFT = "draft"  # Low confidence, queued for user review
    PENDING = "pending"  # High confidence, shown directly in the calendar
    CONFIRMED = "confirmed"  # User confirmed (or entered manually)
    COMPLETED = "completed"  # User marked done
    CANCELLED = "cancelled"  # User cancelled


class SourceType(str, Enum):
    VOICE = "voice"
    TEXT = "text"
    PHOTO = "photo"
    HEALTH = "health"
    LOCATION = "location"
    MANUAL = "manual"


class ReminderType(str, Enum):
    SMART = "smart"  # Generated from the per-type default table
    CUSTOM = "custom"  # Added by the user


class ReminderStatus(str, Enum):
    SCHEDULED = "scheduled"
    SENT = "sent"
    CANCELLED = "cancelled"


class Reminder(BaseModel):
    """A notification offset relative to the event start, with its own delivery status."""

    id: str = Field(default_factory=new_id)
    type: ReminderType = ReminderType.SMART
    timing_minutes_before: int = Field(..., gt=0)
    status: ReminderStatus = ReminderStatus.SCHEDULED

    def fire_time(self, event_datetime: dt.datetime) -> dt.datetime:
        return event_datetime - dt.timedelta(minutes=self.timing_minutes_before)


class Event(BaseModel):
    """
    A tracked event with lifecycle status and reminders.

    Mirrors the events document schema: extracted fields, provenance,
    user modification flags and the optional vector-index back-reference.
    """

    model_config = ConfigDict(frozen=False)

    # Identity
    id: str = Field(default_factory=new_id)
    user_id: str = Field(..., description="User who owns this event")

    # Extracted (user-editable) fields
    title: str
    description: str = ""
    datetime: dt.datetime
    end_datetime: dt.datetime | None = None
    is_all_day: bool = False
    location: str | None = None
    participants: list[str] = Field(default_factory=list)

    # Recurrence rule as entered (e.g. "weekly"); stored and returned, not expanded
    recurrence: str | None = None
    recurrence_end_date: dt.datetime | None = None

    # Classification (fixed at creation)
    type: EventType
    confidence: float = Field(..., ge=0.0, le=1.0)
    status: EventStatus

    # Provenance (fixed at creation)
    source_type: SourceType
    source_id: str | None = None
    source_text: str | None = None

    # User flags
    user_confirmed: bool = False
    user_modified: bool = False
    completed_at: dt.datetime | None = None

    reminders: list[Reminder] = Field(default_factory=list)

    # Vector index back-reference (owned by the search service)
    embedding_id: str | None = None
    embedding_created_at: dt.datetime | None = None

    # Timestamps
    created_at: dt.datetime = Field(default_factory=utc_now)
    updated_at: dt.datetime = Field(default_factory=utc_now)

    # Optimistic concurrency counter, bumped on every persisted write
    version: int = Field(default=1, ge=1)

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title cannot be empty")
        return v.strip()

    @field_validator(
        "datetime",
        "end_datetime",
        "recurrence_end_date",
        "completed_at",
        "embedding_created_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def normalize_utc(cls, v: dt.datetime | None) -> dt.datetime | None:
        return ensure_utc(v)

    @model_validator(mode="after")
    def check_consistency(self) -> Event:
        if (self.status == EventStatus.COMPLETED) != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when status is completed")
        if self.end_datetime is not None and self.end_datetime < self.datetime:
            raise ValueError("end_datetime cannot be before datetime")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.status in (EventStatus.COMPLETED, EventStatus.CANCELLED)

    @property
    def awaiting_confirmation(self) -> bool:
        return not self.user_confirmed and self.status in (EventStatus.DRAFT, EventStatus.PENDING)

    def to_db_dict(self) -> dict[str, Any]:
        """Convert to dict for database storage."""

        def iso(value: dt.datetime | None) -> str | None:
            return value.isoformat(timespec="microseconds") if value else None

        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "datetime": iso(self.datetime),
            "end_datetime": iso(self.end_datetime),
            "is_all_day": int(self.is_all_day),
            "type": self.type.value,
            "status": self.status.value,
            "confidence": self.confidence,
            "source_type": self.source_type.value,
            "source_id": self.source_id,
            "source_text": self.source_text,
            "location": self.location,
            "participants": json.dumps(self.participants),
            "recurrence": self.recurrence,
            "recurrence_end_date": iso(self.recurrence_end_date),
            "reminders": json.dumps([r.model_dump(mode="json") for r in self.reminders]),
            "user_confirmed": int(self.user_confirmed),
            "user_modified": int(self.user_modified),
            "completed_at": iso(self.completed_at),
            "embedding_id": self.embedding_id,
            "embedding_created_at": iso(self.embedding_created_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
            "version": self.version,
        }

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> Event:
        """Create Event from database row."""

        def parse_dt(val: str | None) -> dt.datetime | None:
            if val is None:
                return None
            return dt.datetime.fromisoformat(val)

        return cls(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row.get("description") or "",
            datetime=parse_dt(row["datetime"]),
            end_datetime=parse_dt(row.get("end_datetime")),
            is_all_day=bool(row.get("is_all_day")),
            location=row.get("location"),
            participants=json.loads(row["participants"]) if row.get("participants") else [],
            recurrence=row.get("recurrence"),
            recurrence_end_date=parse_dt(row.get("recurrence_end_date")),
            type=EventType(row["type"]),
            confidence=row["confidence"],
            status=EventStatus(row["status"]),
            source_type=SourceType(row["source_type"]),
            source_id=row.get("source_id"),
            source_text=row.get("source_text"),
            user_confirmed=bool(row.get("user_confirmed")),
            user_modified=bool(row.get("user_modified")),
            completed_at=parse_dt(row.get("completed_at")),
            reminders=json.loads(row["reminders"]) if row.get("reminders") else [],
            embedding_id=row.get("embedding_id"),
            embedding_created_at=parse_dt(row.get("embedding_created_at")),
            created_at=parse_dt(row.get("created_at")) or utc_now(),
            updated_at=parse_dt(row.get("updated_at")) or utc_now(),
            version=row.get("version", 1),
        )


class EventCandidate(BaseModel):
    """
    Candidate event as returned by the extraction functions.

    `type` and `confidence` are deliberately loose here: the classifier
    validates them and raises its own typed errors.
    """

    type: Any
    confidence: Any
    title: str
    description: str = ""
    datetime: dt.datetime
    end_datetime: dt.datetime | None = None
    is_all_day: bool = False
    location: str | None = None
    participants: list[str] = Field(default_factory=list)
    recurrence: str | None = None
    recurrence_end_date: dt.datetime | None = None
    source_type: SourceType = SourceType.TEXT
    source_id: str | None = None
    source_text: str | None = None

    @field_validator("title")
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("title cannot be empty")
        return v.strip()

    @field_validator("datetime", "end_datetime", "recurrence_end_date")
    @classmethod
    def normalize_utc(cls, v: dt.datetime | None) -> dt.datetime | None:
        return ensure_utc(v)


class EventCreate(BaseModel):
    """Input model for a manually entered event (bypasses the classifier)."""

    user_id: str
    title: str
    description: str = ""
    datetime: dt.datetime
    end_datetime: dt.datetime | None = None
    is_all_day: bool = False
    type: EventType
    location: str | None = None
    participants: list[str] = Field(default_factory=list)
    recurrence: str | None = None
    recurrence_end_date: dt.datetime | None = None


class EventUpdate(BaseModel):
    """User-editable fields (all optional). Classification and provenance are not editable."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    datetime: dt.datetime | None = None
    end_datetime: dt.datetime | None = None
    is_all_day: bool | None = None
    location: str | None = None
    participants: list[str] | None = None
    recurrence: str | None = None
    recurrence_end_date: dt.datetime | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly set by the caller (an explicit None clears optional fields)."""
        return self.model_dump(exclude_unset=True)
