"""FastAPI server for Lifelog Events"""

from __future__ import annotations

import sqlite3
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from lifelog.api.routes.admin import router as admin_router
from lifelog.api.routes.events import router as events_router
from lifelog.api.routes.health import router as health_router
from lifelog.config import API_HOST, API_PORT, APP_VERSION, is_development, is_production
from lifelog.events.errors import (
    ConcurrentModificationError,
    IllegalTransitionError,
    InvalidEventInputError,
    ReminderNotFoundError,
    ReminderStateError,
    TerminalStateError,
)
from lifelog.infrastructure.database import init_database
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import counter, log_event

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="Lifelog Events API", version=APP_VERSION)

logger = get_logger(__name__)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Malformed request bodies: report which fields failed, not the validation rules.
    """
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    counter("api.validation_errors")

    return JSONResponse(
        status_code=422,
        content={
            "detail": "Invalid request format. Please check your request and try again.",
            "error_count": len(exc.errors()),
            "invalid_fields": [str(err["loc"][-1]) for err in exc.errors()],
        },
    )


@app.exception_handler(ValidationError)
async def model_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Domain model rejected the resulting state (e.g. an edit emptying the title)."""
    counter("api.invalid_input")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "invalid_input",
            "detail": "; ".join(err["msg"] for err in exc.errors()),
        },
    )


@app.exception_handler(InvalidEventInputError)
async def invalid_input_handler(request: Request, exc: InvalidEventInputError) -> JSONResponse:
    counter("api.invalid_input")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_input", "detail": str(exc)},
    )


@app.exception_handler(IllegalTransitionError)
async def illegal_transition_handler(
    request: Request, exc: IllegalTransitionError
) -> JSONResponse:
    """Rejected lifecycle action; hosts use allowed_actions to refresh their UI."""
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "error": "terminal_state"
            if isinstance(exc, TerminalStateError)
            else "illegal_transition",
            "detail": str(exc),
            "current_status": exc.current_status,
            "action": exc.action,
            "allowed_actions": exc.allowed_actions,
        },
    )


@app.exception_handler(ConcurrentModificationError)
async def concurrent_modification_handler(
    request: Request, exc: ConcurrentModificationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "concurrent_modification", "detail": str(exc)},
    )


@app.exception_handler(ReminderNotFoundError)
async def reminder_not_found_handler(request: Request, exc: ReminderNotFoundError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"error": "reminder_not_found", "detail": str(exc)},
    )


@app.exception_handler(ReminderStateError)
async def reminder_state_handler(request: Request, exc: ReminderStateError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "reminder_not_scheduled", "detail": str(exc)},
    )


ALLOWED_ORIGINS: list[str] = []

# Allow local web clients in development only
if is_development():
    ALLOWED_ORIGINS.extend(
        [
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS", "PATCH"],
    allow_headers=["Content-Type", "Authorization", "X-User-ID", "X-Request-ID"],
)

# Initialize database schema
try:
    logger.info("Initializing database schema...")
    init_database()
    logger.info("Database initialization complete")
except sqlite3.OperationalError as e:
    logger.critical("Database schema error: %s", e)
    raise RuntimeError(f"Database initialization failed: {e}") from e

# Include routers
app.include_router(health_router)
app.include_router(events_router)
app.include_router(admin_router)

log_event(
    "api.startup", service="lifelog-events", version=APP_VERSION, production=is_production()
)


@app.get("/")
def root() -> dict[str, Any]:
    return {
        "service": "Lifelog Events API",
        "version": APP_VERSION,
        "status": "running",
        "endpoints": {
            "health": "/health",
            "metrics": "/health/metrics",
            "events": "/api/events",
            "extracted": "/api/events/extracted",
            "upcoming": "/api/events/upcoming",
            "review": "/api/events/review",
            "stats": "/api/events/stats",
            "conflicts": "/api/events/conflicts",
            "reminder_presets": "/api/events/reminder-presets",
            "event_config": "/api/admin/event-config",
        },
    }


def main() -> None:
    """Run the API with uvicorn (console script: lifelog-api)."""
    import uvicorn

    uvicorn.run("lifelog.api.app:app", host=API_HOST, port=API_PORT, reload=is_development())
