"""API tests for /api/admin/event-config"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from lifelog.api.middleware import auth as auth_module

ADMIN = {"Authorization": "Bearer admin-secret"}


@pytest.fixture(autouse=True)
def admin_key(monkeypatch):
    monkeypatch.setattr(auth_module.auth, "api_key", "admin-secret")


def test_requires_admin_key(client):
    assert client.get("/api/admin/event-config").status_code == 401
    assert (
        client.get(
            "/api/admin/event-config", headers={"Authorization": "Bearer wrong"}
        ).status_code
        == 403
    )


def test_defaults_before_first_save(client):
    body = client.get("/api/admin/event-config", headers=ADMIN).json()

    assert body["is_default"] is True
    assert body["config"]["version"] == 0
    assert body["effective_settings"]["model"] == "gpt-4o-mini"


def test_update_merges_settings_and_bumps_version(client):
    first = client.put(
        "/api/admin/event-config",
        json={"enable_dynamic_config": True, "settings": {"confidence_threshold": 0.4}},
        headers=ADMIN,
    )
    assert first.status_code == 200
    assert first.json()["config"]["version"] == 1

    second = client.put(
        "/api/admin/event-config",
        json={"settings": {"toast_display_limit": 3}, "change_notes": "show more toasts"},
        headers=ADMIN,
    )
    body = second.json()
    assert body["config"]["version"] == 2
    assert body["config"]["change_notes"] == "show more toasts"
    assert body["effective_settings"]["confidence_threshold"] == 0.4
    assert body["effective_settings"]["toast_display_limit"] == 3
    assert body["is_default"] is False

    versions = client.get("/api/admin/event-config/versions", headers=ADMIN).json()
    assert [v["version"] for v in versions] == [2, 1]


def test_invalid_settings_rejected(client):
    response = client.put(
        "/api/admin/event-config",
        json={"settings": {"temperature": 3}},
        headers=ADMIN,
    )

    assert response.status_code == 400
    assert client.get("/api/admin/event-config", headers=ADMIN).json()["is_default"] is True


def test_disabled_type_filters_ingestion(client):
    client.put(
        "/api/admin/event-config",
        json={"enable_dynamic_config": True, "settings": {"enabled_event_types": ["meeting"]}},
        headers=ADMIN,
    )
    start = (datetime.now(UTC) + timedelta(days=7)).isoformat()

    response = client.post(
        "/api/events/extracted",
        json={"type": "todo", "confidence": 0.9, "title": "Buy milk", "datetime": start},
        headers={"X-User-ID": "user-1"},
    )

    assert response.status_code == 200
    assert response.json() == {"created": False, "event": None}
