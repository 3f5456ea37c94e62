"""
Database schema initialization for Lifelog.

Contains the SQL schema and initialization logic, kept apart from database.py
so the pool module stays small.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from lifelog.observability.logging import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("events", "event_extraction_config", "event_extraction_versions")


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Safe to run multiple times - uses CREATE TABLE IF NOT EXISTS.

    Args:
        db_path: Path to the database file

    Side Effects:
    - Creates the parent directory if needed
    - Creates tables and indexes if they don't exist
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS events (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                title TEXT NOT NULL,
                description TEXT,
                datetime TEXT NOT NULL,
                end_datetime TEXT,
                is_all_day INTEGER NOT NULL DEFAULT 0,
                type TEXT NOT NULL,
                status TEXT NOT NULL,
                confidence REAL NOT NULL,
                source_type TEXT NOT NULL,
                source_id TEXT,
                source_text TEXT,
                location TEXT,
                participants TEXT,
                recurrence TEXT,
                recurrence_end_date TEXT,
                reminders TEXT,
                user_confirmed INTEGER NOT NULL DEFAULT 0,
                user_modified INTEGER NOT NULL DEFAULT 0,
                completed_at TEXT,
                embedding_id TEXT,
                embedding_created_at TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1
            );

            CREATE INDEX IF NOT EXISTS idx_events_user_datetime
            ON events(user_id, datetime);

            CREATE INDEX IF NOT EXISTS idx_events_user_status
            ON events(user_id, status);

            CREATE TABLE IF NOT EXISTS event_extraction_config (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                version INTEGER NOT NULL,
                config TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS event_extraction_versions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                version INTEGER NOT NULL,
                previous_version INTEGER,
                config TEXT NOT NULL,
                changed_by TEXT NOT NULL,
                change_notes TEXT,
                changed_at TEXT NOT NULL
            );
        """)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database schema ready at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Check that every required table exists.

    Raises:
        ValueError: If tables are missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    present = {row[0] for row in rows}
    missing = [table for table in REQUIRED_TABLES if table not in present]
    if missing:
        raise ValueError(f"Missing tables: {', '.join(missing)}")
    return True
