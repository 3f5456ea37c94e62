"""Lifelog Events - classification and lifecycle for life-log events"""

from __future__ import annotations

__version__ = "1.0.0"


# Lazy imports for events module
def __getattr__(name: str):
    """
    Lazy imports so lightweight modules (config, logging) load without the database layer.
    """
    if name in ("Event", "EventStatus", "EventType"):
        from lifelog.events import models

        return getattr(models, name)

    if name == "EventsService":
        from lifelog.events.service import EventsService

        return EventsService

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = [
    "Event",
    "EventStatus",
    "EventType",
    "EventsService",
]
