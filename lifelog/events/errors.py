"""
Typed errors for the event lifecycle.

Every error here is raised synchronously and is non-retryable: the caller
either fixes its input or surfaces the rejection. None of these represent a
transient failure.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class EventError(Exception):
    """Base class for event classification and lifecycle errors."""


class InvalidEventInputError(EventError, ValueError):
    """Malformed input from the extraction payload or a user request."""


class InvalidConfidenceError(InvalidEventInputError):
    def __init__(self, confidence: Any):
        self.confidence = confidence
        super().__init__(f"confidence must be a number in [0, 1], got {confidence!r}")


class UnknownEventTypeError(InvalidEventInputError):
    def __init__(self, event_type: Any):
        self.event_type = event_type
        super().__init__(f"unknown event type {event_type!r}")


class InvalidReminderTimingError(InvalidEventInputError):
    def __init__(self, timing_minutes: Any, reason: str):
        self.timing_minutes = timing_minutes
        self.reason = reason
        super().__init__(f"invalid reminder timing {timing_minutes!r}: {reason}")


class IllegalTransitionError(EventError):
    """
    Attempted action is not in the transition table for the current status.

    Carries the current status, the attempted action and the actions that
    would have been accepted, so hosts can render "this action is no longer
    available" without re-deriving the table.
    """

    def __init__(self, current_status: str, action: str, allowed_actions: Iterable[str]):
        self.current_status = current_status
        self.action = action
        self.allowed_actions = sorted(allowed_actions)
        super().__init__(self._message())

    def _message(self) -> str:
        allowed = ", ".join(self.allowed_actions) or "none"
        return (
            f"cannot {self.action} an event in status '{self.current_status}' "
            f"(allowed: {allowed})"
        )


class TerminalStateError(IllegalTransitionError):
    """The event is completed or cancelled; no action is accepted."""

    def __init__(self, current_status: str, action: str):
        super().__init__(current_status, action, ())

    def _message(self) -> str:
        return f"event is already {self.current_status}; cannot {self.action}"


class ReminderNotFoundError(EventError, KeyError):
    def __init__(self, reminder_id: str):
        self.reminder_id = reminder_id
        super().__init__(f"reminder {reminder_id!r} not found")

    def __str__(self) -> str:
        return str(self.args[0])


class ReminderStateError(EventError):
    def __init__(self, reminder_id: str, status: str):
        self.reminder_id = reminder_id
        self.status = status
        super().__init__(f"reminder {reminder_id!r} is {status}, not scheduled")


class ConcurrentModificationError(EventError):
    """The stored event changed between read and write (optimistic check failed)."""

    def __init__(self, event_id: str, expected_version: int):
        self.event_id = event_id
        self.expected_version = expected_version
        super().__init__(
            f"event {event_id} was modified concurrently (expected version {expected_version})"
        )
