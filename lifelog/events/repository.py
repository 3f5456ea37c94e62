"""
Event Repository - persistence for the events table.

Follows the database patterns in lifelog/infrastructure/database.py. Writes
to an existing event are optimistic: the caller passes the version it read,
and the UPDATE only applies if the stored version still matches.
"""

from __future__ import annotations

import datetime as dt
import json

from lifelog.config import UPCOMING_EVENTS_LIMIT
from lifelog.events.errors import ConcurrentModificationError
from lifelog.events.extraction_config import EventExtractionConfig, default_config
from lifelog.events.models import Event, EventStatus, EventType, SourceType, utc_now
from lifelog.infrastructure.database import db_transaction, get_db_connection, retry_on_db_lock
from lifelog.observability.logging import get_logger
from lifelog.observability.telemetry import counter

logger = get_logger(__name__)

_COLUMNS = (
    "id",
    "user_id",
    "title",
    "description",
    "datetime",
    "end_datetime",
    "is_all_day",
    "type",
    "status",
    "confidence",
    "source_type",
    "source_id",
    "source_text",
    "location",
    "participants",
    "recurrence",
    "recurrence_end_date",
    "reminders",
    "user_confirmed",
    "user_modified",
    "completed_at",
    "embedding_id",
    "embedding_created_at",
    "created_at",
    "updated_at",
    "version",
)


def _iso(value: dt.datetime) -> str:
    return value.astimezone(dt.UTC).isoformat(timespec="microseconds")


def _filters(
    user_id: str,
    status: list[EventStatus] | None = None,
    event_type: EventType | None = None,
    source_type: SourceType | None = None,
) -> tuple[str, list[object]]:
    clauses = ["user_id = ?"]
    params: list[object] = [user_id]

    if status:
        clauses.append(f"status IN ({','.join('?' * len(status))})")
        params.extend(EventStatus(s).value for s in status)
    if event_type:
        clauses.append("type = ?")
        params.append(EventType(event_type).value)
    if source_type:
        clauses.append("source_type = ?")
        params.append(SourceType(source_type).value)

    return " AND ".join(clauses), params


class EventRepository:
    """
    Repository for Event persistence.

    All methods use connection pooling and proper transaction handling.
    Events are never deleted here.
    """

    @staticmethod
    @retry_on_db_lock()
    def create(event: Event) -> Event:
        """
        Insert a new event.

        Side Effects:
            - Inserts row into events table
            - Commits transaction
        """
        placeholders = ", ".join(f":{c}" for c in _COLUMNS)
        with db_transaction() as conn:
            conn.execute(
                f"INSERT INTO events ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                event.to_db_dict(),
            )

        logger.info(
            "Created event %s (%s) for user %s", event.id, event.status.value, event.user_id
        )
        return event

    @staticmethod
    def get_by_id(event_id: str) -> Event | None:
        with get_db_connection() as conn:
            row = conn.execute("SELECT * FROM events WHERE id = ?", (event_id,)).fetchone()

        if not row:
            return None
        return Event.from_db_row(dict(row))

    @staticmethod
    @retry_on_db_lock()
    def save(event: Event, expected_version: int) -> Event:
        """
        Persist an updated event if nobody else wrote it since `expected_version`.

        Returns:
            The stored event with its version bumped

        Raises:
            ConcurrentModificationError: stored version differs (or the row is gone)

        Side Effects:
            - Updates the row in events table
            - Commits transaction
        """
        stored = event.model_copy(update={"version": expected_version + 1})
        data = stored.to_db_dict()
        assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS if c != "id")

        with db_transaction() as conn:
            cursor = conn.execute(
                f"UPDATE events SET {assignments} WHERE id = :id AND version = :expected_version",
                {**data, "expected_version": expected_version},
            )
            if cursor.rowcount == 0:
                counter("repository.version_conflicts")
                logger.warning(
                    "Version conflict on event %s (expected %d)", event.id, expected_version
                )
                raise ConcurrentModificationError(event.id, expected_version)

        return stored

    @staticmethod
    def list_by_user(
        user_id: str,
        status: list[EventStatus] | None = None,
        event_type: EventType | None = None,
        source_type: SourceType | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Event]:
        """
        List events for a user, newest start first, optionally filtered.
        """
        where, params = _filters(user_id, status, event_type, source_type)
        with get_db_connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM events WHERE {where} ORDER BY datetime DESC LIMIT ? OFFSET ?",
                (*params, limit, offset),
            ).fetchall()

        return [Event.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def count_by_user(
        user_id: str,
        status: list[EventStatus] | None = None,
        event_type: EventType | None = None,
        source_type: SourceType | None = None,
    ) -> int:
        where, params = _filters(user_id, status, event_type, source_type)
        with get_db_connection() as conn:
            row = conn.execute(f"SELECT COUNT(*) FROM events WHERE {where}", params).fetchone()
        return row[0]

    @staticmethod
    def count_by_status(user_id: str) -> dict[str, int]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) FROM events WHERE user_id = ? GROUP BY status",
                (user_id,),
            ).fetchall()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    def count_by_type(user_id: str) -> dict[str, int]:
        with get_db_connection() as conn:
            rows = conn.execute(
                "SELECT type, COUNT(*) FROM events WHERE user_id = ? GROUP BY type",
                (user_id,),
            ).fetchall()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    def count_awaiting_confirmation(user_id: str) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                """
                SELECT COUNT(*) FROM events
                WHERE user_id = ? AND user_confirmed = 0 AND status IN ('draft', 'pending')
                """,
                (user_id,),
            ).fetchone()
        return row[0]

    @staticmethod
    def count_user_confirmed(user_id: str) -> int:
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM events WHERE user_id = ? AND user_confirmed = 1",
                (user_id,),
            ).fetchone()
        return row[0]

    @staticmethod
    def list_upcoming(
        user_id: str, now: dt.datetime | None = None, limit: int = UPCOMING_EVENTS_LIMIT
    ) -> list[Event]:
        """
        Next events for the home feed: pending or confirmed, starting after now, soonest first.
        """
        now = now or utc_now()
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE user_id = ?
                  AND status IN ('pending', 'confirmed')
                  AND datetime > ?
                ORDER BY datetime ASC
                LIMIT ?
                """,
                (user_id, _iso(now), limit),
            ).fetchall()

        return [Event.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_in_window(user_id: str, start: dt.datetime, end: dt.datetime) -> list[Event]:
        """
        Pending or confirmed events starting within [start, end], soonest first.
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE user_id = ?
                  AND status IN ('pending', 'confirmed')
                  AND datetime >= ?
                  AND datetime <= ?
                ORDER BY datetime ASC
                """,
                (user_id, _iso(start), _iso(end)),
            ).fetchall()

        return [Event.from_db_row(dict(row)) for row in rows]

    @staticmethod
    def list_awaiting_review(user_id: str, limit: int = 100) -> list[Event]:
        """
        Events the user has not confirmed yet (draft or pending), drafts first, soonest first.
        """
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT * FROM events
                WHERE user_id = ?
                  AND user_confirmed = 0
                  AND status IN ('draft', 'pending')
                ORDER BY
                    CASE status WHEN 'draft' THEN 0 ELSE 1 END,
                    datetime ASC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()

        return [Event.from_db_row(dict(row)) for row in rows]


class ExtractionConfigRepository:
    """Current extraction config (single row) plus an append-only version history."""

    @staticmethod
    def get_stored() -> EventExtractionConfig | None:
        """Stored config, or None if an admin never saved one."""
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT config FROM event_extraction_config WHERE id = 1"
            ).fetchone()

        if not row:
            return None
        return EventExtractionConfig.model_validate_json(row[0])

    @staticmethod
    def get_current() -> EventExtractionConfig:
        return ExtractionConfigRepository.get_stored() or default_config()

    @staticmethod
    @retry_on_db_lock()
    def save(
        config: EventExtractionConfig, changed_by: str, change_notes: str | None = None
    ) -> EventExtractionConfig:
        """
        Store a new config version and record it in the history table.

        Side Effects:
            - Upserts the single row in event_extraction_config
            - Appends a row to event_extraction_versions
            - Commits transaction
        """
        now = utc_now()
        with db_transaction() as conn:
            row = conn.execute(
                "SELECT version FROM event_extraction_config WHERE id = 1"
            ).fetchone()
            previous_version = row[0] if row else None

            stored = config.model_copy(
                update={
                    "version": (previous_version or 0) + 1,
                    "last_updated": now,
                    "updated_by": changed_by,
                    "change_notes": change_notes,
                }
            )
            payload = stored.model_dump_json()

            conn.execute(
                """
                INSERT INTO event_extraction_config (id, version, config, updated_at)
                VALUES (1, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    version = excluded.version,
                    config = excluded.config,
                    updated_at = excluded.updated_at
                """,
                (stored.version, payload, _iso(now)),
            )
            conn.execute(
                """
                INSERT INTO event_extraction_versions (
                    version, previous_version, config, changed_by, change_notes, changed_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                """,
                (stored.version, previous_version, payload, changed_by, change_notes, _iso(now)),
            )

        logger.info("Saved extraction config version %d by %s", stored.version, changed_by)
        return stored

    @staticmethod
    def list_versions(limit: int = 20) -> list[dict[str, object]]:
        with get_db_connection() as conn:
            rows = conn.execute(
                """
                SELECT version, previous_version, config, changed_by, change_notes, changed_at
                FROM event_extraction_versions
                ORDER BY version DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()

        return [
            {
                "version": row["version"],
                "previous_version": row["previous_version"],
                "config": json.loads(row["config"]),
                "changed_by": row["changed_by"],
                "change_notes": row["change_notes"],
                "changed_at": row["changed_at"],
            }
            for row in rows
        ]
