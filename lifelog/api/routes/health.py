"""Health check endpoint for the Lifelog API.

Liveness with schema readiness, plus the in-process metrics snapshot.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from lifelog.config import APP_VERSION, OPENAI_API_KEY
from lifelog.infrastructure.database import get_db_connection
from lifelog.infrastructure.database_schema import validate_schema
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import snapshot

router = APIRouter(tags=["health"])
logger = get_logger(__name__)


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint.

    Reports "degraded" instead of failing when the database is missing or
    its schema is incomplete, so the endpoint itself stays up.
    """
    try:
        with get_db_connection() as conn:
            validate_schema(conn)
        database = {"ready": True}
    except (FileNotFoundError, ValueError, sqlite3.Error) as e:
        logger.warning("Health check database problem: %s", e)
        database = {"ready": False, "error": str(e)}

    return {
        "status": "healthy" if database["ready"] else "degraded",
        "service": "Lifelog Events API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "database": database,
        "extraction": {"openai_api_key": bool(OPENAI_API_KEY)},
    }


@router.get("/health/metrics")
async def metrics() -> dict[str, Any]:
    """Counters (grouped by prefix) and latency stats since process start."""
    return snapshot()
