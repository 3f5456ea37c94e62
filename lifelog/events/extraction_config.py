"""
Admin-tunable event extraction settings.

The extraction functions read these at runtime; this service uses them as an
admission filter in front of the classifier (enabled types, confidence
floor). When enable_dynamic_config is off, the defaults are in effect
regardless of what is stored.
"""

from __future__ import annotations

import datetime as dt
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from lifelog.config import (
    EXTRACTION_MAX_TOKENS,
    EXTRACTION_MODEL,
    EXTRACTION_TEMPERATURE,
    EXTRACTION_TIMEZONE,
)
from lifelog.events.models import EventType, utc_now

VALID_MODELS = ("gpt-4o-mini", "gpt-4o", "gpt-4o-2024-08-06")


class EventExtractionSettings(BaseModel):
    # OpenAI settings
    model: str = EXTRACTION_MODEL
    temperature: float = Field(default=EXTRACTION_TEMPERATURE, ge=0.0, le=1.0)
    max_tokens: int = Field(default=EXTRACTION_MAX_TOKENS, ge=100, le=4000)

    # Time handling
    timezone: str = EXTRACTION_TIMEZONE

    # Toast display (mobile)
    toast_enabled: bool = True
    toast_lookback_hours: int = Field(default=24, ge=1, le=168)
    toast_display_limit: int = Field(default=1, ge=1, le=10)

    # Confidence filtering (0.0 keeps everything)
    confidence_threshold: float = Field(default=0.0, ge=0.0, le=1.0)

    enabled_event_types: list[EventType] = Field(default_factory=lambda: list(EventType))

    @field_validator("model")
    @classmethod
    def model_supported(cls, v: str) -> str:
        if v not in VALID_MODELS:
            raise ValueError(f"Invalid model: {v}. Must be one of: {', '.join(VALID_MODELS)}")
        return v

    @field_validator("timezone")
    @classmethod
    def timezone_known(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}") from None
        return v

    @field_validator("enabled_event_types")
    @classmethod
    def dedupe_types(cls, v: list[EventType]) -> list[EventType]:
        return list(dict.fromkeys(v))


class EventExtractionConfig(BaseModel):
    version: int = 0
    last_updated: dt.datetime = Field(default_factory=utc_now)
    updated_by: str = "system"
    enable_dynamic_config: bool = False
    change_notes: str | None = None
    settings: EventExtractionSettings = Field(default_factory=EventExtractionSettings)

    def effective_settings(self) -> EventExtractionSettings:
        if not self.enable_dynamic_config:
            return EventExtractionSettings()
        return self.settings


def default_config() -> EventExtractionConfig:
    return EventExtractionConfig()


def admits(
    settings: EventExtractionSettings, event_type: EventType, confidence: float
) -> tuple[bool, str]:
    """
    Decide whether a classified candidate is ingested at all.

    Independent of the pending/draft threshold: a candidate below the admin
    floor is dropped, not drafted.
    """
    if event_type not in settings.enabled_event_types:
        return False, f"type_disabled:{event_type.value}"
    if confidence < settings.confidence_threshold:
        return False, f"below_threshold:{settings.confidence_threshold}"
    return True, "admitted"
