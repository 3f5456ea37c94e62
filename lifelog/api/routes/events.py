"""
Events API endpoints.

Thin HTTP layer over EventsService. Lifecycle and input errors raised by the
service are mapped to responses by the handlers registered in
lifelog.api.app; routes only translate "not found or not owned" into 404.
"""

from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field

from lifelog.api.middleware.user_auth import AuthenticatedUser, get_current_user
from lifelog.config import API_LIST_LIMIT_DEFAULT, API_LIST_LIMIT_MAX, UPCOMING_EVENTS_LIMIT
from lifelog.events import (
    Event,
    EventCandidate,
    EventCreate,
    EventsService,
    EventStatus,
    EventUpdate,
    SourceType,
    allowed_actions,
    coerce_event_type,
    format_reminder_timing,
)
from lifelog.events.conflicts import EventConflict
from lifelog.events.models import Reminder
from lifelog.events.reminders import PRESET_OPTIONS, count_by_status, sort_reminders
from lifelog.observability.logging import get_logger

router = APIRouter(prefix="/api/events", tags=["events"])
logger = get_logger(__name__)


# ============================================================================
# Request/Response Models
# ============================================================================


class ReminderResponse(BaseModel):
    id: str
    type: str
    timing_minutes_before: int
    label: str
    status: str
    fire_at: str

    @classmethod
    def from_reminder(cls, reminder: Reminder, fire_at: dt.datetime) -> ReminderResponse:
        return cls(
            id=reminder.id,
            type=reminder.type.value,
            timing_minutes_before=reminder.timing_minutes_before,
            label=format_reminder_timing(reminder.timing_minutes_before),
            status=reminder.status.value,
            fire_at=fire_at.isoformat(),
        )


class EventResponse(BaseModel):
    """API response for a single event."""

    id: str
    user_id: str
    title: str
    description: str
    datetime: str
    end_datetime: str | None
    is_all_day: bool
    location: str | None
    participants: list[str]
    recurrence: str | None
    recurrence_end_date: str | None
    type: str
    confidence: float
    status: str
    source_type: str
    source_id: str | None
    source_text: str | None
    user_confirmed: bool
    user_modified: bool
    completed_at: str | None
    reminders: list[ReminderResponse]
    reminder_counts: dict[str, int]
    allowed_actions: list[str]
    version: int
    created_at: str
    updated_at: str

    @classmethod
    def from_event(cls, event: Event) -> EventResponse:
        """Convert Event to API response."""
        return cls(
            id=event.id,
            user_id=event.user_id,
            title=event.title,
            description=event.description,
            datetime=event.datetime.isoformat(),
            end_datetime=event.end_datetime.isoformat() if event.end_datetime else None,
            is_all_day=event.is_all_day,
            location=event.location,
            participants=event.participants,
            recurrence=event.recurrence,
            recurrence_end_date=(
                event.recurrence_end_date.isoformat() if event.recurrence_end_date else None
            ),
            type=event.type.value,
            confidence=event.confidence,
            status=event.status.value,
            source_type=event.source_type.value,
            source_id=event.source_id,
            source_text=event.source_text,
            user_confirmed=event.user_confirmed,
            user_modified=event.user_modified,
            completed_at=event.completed_at.isoformat() if event.completed_at else None,
            reminders=[
                ReminderResponse.from_reminder(r, r.fire_time(event.datetime))
                for r in sort_reminders(event.reminders)
            ],
            reminder_counts=count_by_status(event.reminders),
            allowed_actions=[a.value for a in allowed_actions(event.status)],
            version=event.version,
            created_at=event.created_at.isoformat(),
            updated_at=event.updated_at.isoformat(),
        )


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int


class CreateEventRequest(BaseModel):
    """Request to create an event entered by the user."""

    title: str
    description: str = ""
    datetime: dt.datetime
    end_datetime: dt.datetime | None = None
    is_all_day: bool = False
    type: str
    location: str | None = None
    participants: list[str] = Field(default_factory=list)
    recurrence: str | None = None
    recurrence_end_date: dt.datetime | None = None


class ExtractedEventResponse(BaseModel):
    """Result of ingesting a candidate; event is None when the admission filter dropped it."""

    created: bool
    event: EventResponse | None = None


class AddReminderRequest(BaseModel):
    timing_minutes_before: int


class ReminderPresetResponse(BaseModel):
    label: str
    timing_minutes_before: int


class ConflictResponse(BaseModel):
    conflicting_event_id: str
    conflicting_event_title: str
    conflict_type: str
    severity: str
    message: str

    @classmethod
    def from_conflict(cls, conflict: EventConflict) -> ConflictResponse:
        return cls(
            conflicting_event_id=conflict.conflicting_event_id,
            conflicting_event_title=conflict.conflicting_event_title,
            conflict_type=conflict.conflict_type.value,
            severity=conflict.severity.value,
            message=conflict.message,
        )


class ConfirmationStatsResponse(BaseModel):
    awaiting: int
    confirmed: int
    cancelled: int
    confirmation_rate: int
    by_status: dict[str, int]
    by_type: dict[str, int]


def _not_found() -> HTTPException:
    return HTTPException(status_code=404, detail="Event not found")


def _parse_status_filter(raw: str | None) -> list[EventStatus] | None:
    if not raw:
        return None
    return [EventStatus(s.strip()) for s in raw.split(",") if s.strip()]


# ============================================================================
# Endpoints
# ============================================================================


@router.get("", response_model=EventListResponse)
async def list_events(
    user: AuthenticatedUser = Depends(get_current_user),
    status: str | None = Query(
        None, description="Comma-separated statuses: draft,pending,confirmed,completed,cancelled"
    ),
    type: str | None = Query(None, description="Event type"),
    source_type: str | None = Query(None, description="Source type"),
    limit: int = Query(API_LIST_LIMIT_DEFAULT, ge=1, le=API_LIST_LIMIT_MAX),
    offset: int = Query(0, ge=0),
) -> EventListResponse:
    """
    List events for the current user, latest start first.
    """
    try:
        status_filter = _parse_status_filter(status)
        type_filter = coerce_event_type(type) if type else None
        source_filter = SourceType(source_type) if source_type else None
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    events, total = EventsService.list_events(
        user.id,
        status=status_filter,
        event_type=type_filter,
        source_type=source_filter,
        limit=limit,
        offset=offset,
    )
    return EventListResponse(events=[EventResponse.from_event(e) for e in events], total=total)


@router.get("/upcoming", response_model=list[EventResponse])
async def list_upcoming(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(UPCOMING_EVENTS_LIMIT, ge=1, le=API_LIST_LIMIT_MAX),
) -> list[EventResponse]:
    """
    Next pending or confirmed events, soonest first (home feed).
    """
    events = EventsService.list_upcoming(user.id, limit=limit)
    return [EventResponse.from_event(e) for e in events]


@router.get("/review", response_model=list[EventResponse])
async def list_review_queue(
    user: AuthenticatedUser = Depends(get_current_user),
    limit: int = Query(API_LIST_LIMIT_MAX, ge=1, le=API_LIST_LIMIT_MAX),
) -> list[EventResponse]:
    """
    Events awaiting the user's confirmation, drafts first.
    """
    events = EventsService.list_review_queue(user.id, limit=limit)
    return [EventResponse.from_event(e) for e in events]


@router.get("/stats", response_model=ConfirmationStatsResponse)
async def get_stats(
    user: AuthenticatedUser = Depends(get_current_user),
) -> ConfirmationStatsResponse:
    return ConfirmationStatsResponse(**EventsService.confirmation_stats(user.id))


@router.get("/reminder-presets", response_model=list[ReminderPresetResponse])
async def list_reminder_presets() -> list[ReminderPresetResponse]:
    """Offsets offered when adding a custom reminder."""
    return [
        ReminderPresetResponse(label=label, timing_minutes_before=minutes)
        for label, minutes in PRESET_OPTIONS
    ]


@router.get("/conflicts", response_model=list[ConflictResponse])
async def check_conflicts(
    start: dt.datetime = Query(..., alias="datetime"),
    end_datetime: dt.datetime | None = Query(None),
    is_all_day: bool = Query(False),
    exclude_id: str | None = Query(None, description="Event being edited"),
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[ConflictResponse]:
    """
    Check a proposed slot against the user's pending and confirmed events
    before creating or moving an event.
    """
    conflicts = EventsService.check_conflicts(
        user.id, start, end_datetime, is_all_day, exclude_id=exclude_id
    )
    return [ConflictResponse.from_conflict(c) for c in conflicts]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    """
    Get a single event. Only events owned by the current user are returned.
    """
    event = EventsService.get_event(event_id, user.id)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    request: CreateEventRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    """
    Create an event entered by the user. It starts confirmed.
    """
    event_create = EventCreate(
        user_id=user.id,
        title=request.title,
        description=request.description,
        datetime=request.datetime,
        end_datetime=request.end_datetime,
        is_all_day=request.is_all_day,
        type=coerce_event_type(request.type),
        location=request.location,
        participants=request.participants,
        recurrence=request.recurrence,
        recurrence_end_date=request.recurrence_end_date,
    )
    event = EventsService.create_manual(event_create)
    logger.info("Created manual event %s for %s", event.id, user)
    return EventResponse.from_event(event)


@router.post("/extracted", response_model=ExtractedEventResponse)
async def ingest_extracted_event(
    candidate: EventCandidate,
    response: Response,
    user: AuthenticatedUser = Depends(get_current_user),
) -> ExtractedEventResponse:
    """
    Ingest a candidate produced by the extraction functions.

    Responds 201 with the stored event, or 200 with created=false when the
    admin admission filter drops the candidate.
    """
    event = EventsService.ingest_candidate(user.id, candidate)
    if event is None:
        return ExtractedEventResponse(created=False)

    response.status_code = 201
    return ExtractedEventResponse(created=True, event=EventResponse.from_event(event))


@router.post("/{event_id}/confirm", response_model=EventResponse)
async def confirm_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    event = EventsService.confirm(event_id, user.id)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.post("/{event_id}/complete", response_model=EventResponse)
async def complete_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    event = EventsService.complete(event_id, user.id)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.post("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    event = EventsService.cancel(event_id, user.id)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def edit_event(
    event_id: str,
    request: EventUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    """
    Edit user-editable fields. The event keeps its status and is flagged user_modified.
    """
    event = EventsService.edit(event_id, user.id, request)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.post("/{event_id}/reminders", response_model=EventResponse, status_code=201)
async def add_reminder(
    event_id: str,
    request: AddReminderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    event = EventsService.add_custom_reminder(event_id, user.id, request.timing_minutes_before)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)


@router.get("/{event_id}/conflicts", response_model=list[ConflictResponse])
async def get_event_conflicts(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[ConflictResponse]:
    conflicts = EventsService.detect_conflicts(event_id, user.id)
    if conflicts is None:
        raise _not_found()
    return [ConflictResponse.from_conflict(c) for c in conflicts]


@router.get("/{event_id}/reminders/due", response_model=list[ReminderResponse])
async def list_due_reminders(
    event_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> list[ReminderResponse]:
    """
    Scheduler feed: scheduled reminders that have not fired yet, soonest first.
    """
    due = EventsService.due_reminders(event_id, user.id)
    if due is None:
        raise _not_found()
    return [ReminderResponse.from_reminder(r, fire_at) for r, fire_at in due]


@router.post("/{event_id}/reminders/{reminder_id}/sent", response_model=EventResponse)
async def mark_reminder_sent(
    event_id: str,
    reminder_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
) -> EventResponse:
    """
    Scheduler callback: the reminder has been delivered.
    """
    event = EventsService.mark_reminder_sent(event_id, user.id, reminder_id)
    if not event:
        raise _not_found()
    return EventResponse.from_event(event)
