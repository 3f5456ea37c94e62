"""
Pytest configuration for Lifelog tests

Every test gets its own SQLite database; the module-level default keeps the
API app import from touching lifelog/data/.
"""

from __future__ import annotations

import os
import tempfile
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

os.environ.setdefault(
    "LIFELOG_DB_PATH", str(Path(tempfile.mkdtemp(prefix="lifelog-tests-")) / "lifelog.db")
)
os.environ.setdefault("LIFELOG_ENV", "test")

from lifelog.infrastructure.database import init_database, reset_pool  # noqa: E402
from lifelog.observability.telemetry import reset_counters  # noqa: E402

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def next_week() -> datetime:
    """Start time far enough ahead that every default reminder is still in the future."""
    return NOW + timedelta(days=14)


@pytest.fixture(autouse=True)
def event_db(tmp_path, monkeypatch):
    """Fresh database and telemetry state per test"""
    db_path = tmp_path / "lifelog.db"
    monkeypatch.setenv("LIFELOG_DB_PATH", str(db_path))
    reset_pool()
    init_database()
    reset_counters()

    yield db_path

    reset_pool()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from lifelog.api.app import app

    return TestClient(app)
