"""
Admin endpoints for the event extraction configuration.

Every save bumps the config version and appends to the version history.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from lifelog.api.middleware.auth import require_admin_auth
from lifelog.events import EventExtractionConfig, EventExtractionSettings
from lifelog.events.repository import ExtractionConfigRepository
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import log_event

router = APIRouter(prefix="/api/admin/event-config", tags=["admin"])
logger = get_logger(__name__)


class EventConfigResponse(BaseModel):
    config: EventExtractionConfig
    effective_settings: EventExtractionSettings
    is_default: bool


class UpdateEventConfigRequest(BaseModel):
    """Partial update; settings keys not provided keep their current value."""

    settings: dict[str, Any] | None = None
    enable_dynamic_config: bool | None = None
    change_notes: str | None = None
    updated_by: str = "admin"


@router.get("", response_model=EventConfigResponse)
async def get_event_config(
    authenticated: bool = Depends(require_admin_auth),
) -> EventConfigResponse:
    stored = ExtractionConfigRepository.get_stored()
    config = stored or ExtractionConfigRepository.get_current()
    return EventConfigResponse(
        config=config,
        effective_settings=config.effective_settings(),
        is_default=stored is None,
    )


@router.put("", response_model=EventConfigResponse)
async def update_event_config(
    request: UpdateEventConfigRequest,
    authenticated: bool = Depends(require_admin_auth),
) -> EventConfigResponse:
    """
    Update the kill switch and/or settings.

    Settings are merged onto the current ones and re-validated as a whole;
    an invalid value rejects the entire update with 400.
    """
    current = ExtractionConfigRepository.get_current()

    settings = current.settings
    if request.settings:
        settings = EventExtractionSettings.model_validate(
            {**current.settings.model_dump(), **request.settings}
        )

    enable = current.enable_dynamic_config
    if request.enable_dynamic_config is not None:
        enable = request.enable_dynamic_config

    stored = ExtractionConfigRepository.save(
        current.model_copy(update={"settings": settings, "enable_dynamic_config": enable}),
        changed_by=request.updated_by,
        change_notes=request.change_notes,
    )
    log_event(
        "admin.event_config_updated",
        version=stored.version,
        enable_dynamic_config=stored.enable_dynamic_config,
    )
    return EventConfigResponse(
        config=stored, effective_settings=stored.effective_settings(), is_default=False
    )


@router.get("/versions")
async def list_event_config_versions(
    limit: int = Query(20, ge=1, le=100),
    authenticated: bool = Depends(require_admin_auth),
) -> list[dict[str, Any]]:
    return ExtractionConfigRepository.list_versions(limit=limit)
