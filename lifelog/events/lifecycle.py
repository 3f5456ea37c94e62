"""
Event lifecycle state machine.

    draft ──┐
            ├── confirm ──> confirmed ── complete ──> completed
    pending ┘                   │
       │                        │
       └──────── cancel ────────┴──────────────────> cancelled

Edit keeps the current status. Completed and cancelled are terminal.
The full legal surface is TRANSITIONS below; anything not listed is rejected.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from types import MappingProxyType
from typing import Any

from lifelog.events.errors import (
    IllegalTransitionError,
    InvalidEventInputError,
    TerminalStateError,
)
from lifelog.events.models import Event, EventStatus, EventUpdate, utc_now
from lifelog.events.reminders import cancel_elapsed, cancel_scheduled
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class EventAction(str, Enum):
    CONFIRM = "confirm"
    EDIT = "edit"
    COMPLETE = "complete"
    CANCEL = "cancel"


TERMINAL_STATUSES = frozenset({EventStatus.COMPLETED, EventStatus.CANCELLED})

# Classification, provenance and lifecycle fields never come from an edit
EDITABLE_FIELDS = frozenset(EventUpdate.model_fields)

TRANSITIONS: MappingProxyType[tuple[EventStatus, EventAction], EventStatus] = MappingProxyType(
    {
        (EventStatus.DRAFT, EventAction.CONFIRM): EventStatus.CONFIRMED,
        (EventStatus.PENDING, EventAction.CONFIRM): EventStatus.CONFIRMED,
        (EventStatus.CONFIRMED, EventAction.CONFIRM): EventStatus.CONFIRMED,
        (EventStatus.DRAFT, EventAction.EDIT): EventStatus.DRAFT,
        (EventStatus.PENDING, EventAction.EDIT): EventStatus.PENDING,
        (EventStatus.CONFIRMED, EventAction.EDIT): EventStatus.CONFIRMED,
        (EventStatus.CONFIRMED, EventAction.COMPLETE): EventStatus.COMPLETED,
        (EventStatus.DRAFT, EventAction.CANCEL): EventStatus.CANCELLED,
        (EventStatus.PENDING, EventAction.CANCEL): EventStatus.CANCELLED,
        (EventStatus.CONFIRMED, EventAction.CANCEL): EventStatus.CANCELLED,
    }
)


def allowed_actions(status: EventStatus) -> list[EventAction]:
    status = EventStatus(status)
    return [action for (source, action) in TRANSITIONS if source == status]


def next_status(status: EventStatus, action: EventAction) -> EventStatus:
    """
    Look up the resulting status for an action.

    Raises:
        TerminalStateError: status is completed or cancelled
        IllegalTransitionError: action not allowed from status
    """
    status = EventStatus(status)
    action = EventAction(action)

    if status in TERMINAL_STATUSES:
        raise TerminalStateError(status.value, action.value)

    target = TRANSITIONS.get((status, action))
    if target is None:
        raise IllegalTransitionError(
            status.value, action.value, (a.value for a in allowed_actions(status))
        )
    return target


def apply_action(
    event: Event,
    action: EventAction,
    now: dt.datetime | None = None,
    changes: dict[str, Any] | None = None,
) -> Event:
    """
    Apply a user action and return the updated event.

    The input event is never mutated; a rejected action raises before any
    copy is made. `changes` is only accepted with EDIT.

    Side effects on the returned copy:
        confirm  -> user_confirmed = True, elapsed scheduled reminders cancelled
        edit     -> user_modified = True, changed fields applied
        complete -> completed_at = now
        cancel   -> every scheduled reminder cancelled
    """
    action = EventAction(action)
    if changes and action != EventAction.EDIT:
        raise ValueError("field changes are only accepted with the edit action")
    if changes:
        not_editable = sorted(set(changes) - EDITABLE_FIELDS)
        if not_editable:
            raise InvalidEventInputError(f"fields not editable: {', '.join(not_editable)}")

    try:
        target = next_status(event.status, action)
    except IllegalTransitionError as e:
        counter(f"lifecycle.rejected.{action.value}")
        logger.info("Rejected %s on event %s: %s", action.value, event.id, e)
        raise

    now = now or utc_now()

    if action == EventAction.CONFIRM and event.status == EventStatus.CONFIRMED:
        return event

    update: dict[str, Any] = dict(changes or {}) if action == EventAction.EDIT else {}
    update.update(status=target, updated_at=now)

    if action == EventAction.CONFIRM:
        update["user_confirmed"] = True
        update["reminders"] = cancel_elapsed(event.reminders, event.datetime, now)

    elif action == EventAction.EDIT:
        update["user_modified"] = True

    elif action == EventAction.COMPLETE:
        update["completed_at"] = now

    elif action == EventAction.CANCEL:
        update["reminders"] = cancel_scheduled(event.reminders)

    # Re-validate so edits cannot break model invariants
    data = event.model_dump()
    data.update(update)
    updated = Event.model_validate(data)

    if action == EventAction.EDIT and updated.status == EventStatus.CONFIRMED:
        updated.reminders = cancel_elapsed(updated.reminders, updated.datetime, now)

    counter(f"lifecycle.{action.value}")
    log_event(
        "event.transition",
        event_id=event.id,
        action=action.value,
        from_status=event.status.value,
        to_status=target.value,
    )
    return updated
