"""Centralized configuration for the Lifelog events backend.

Re-exports everything from lifelog.infrastructure.settings, then adds typed
constants for database, lifecycle, reminders and API settings. Environment
variable overrides use safe defaults so the app starts without extra env
configuration.
"""

from __future__ import annotations

import os

from lifelog.infrastructure.settings import *  # noqa: F401, F403  re-export existing

# --- App ---
APP_VERSION: str = "1.0.0"

# --- Database ---
DB_POOL_SIZE: int = int(os.getenv("LIFELOG_DB_POOL_SIZE", "5"))
DB_POOL_TIMEOUT: float = float(os.getenv("LIFELOG_DB_POOL_TIMEOUT", "5.0"))
DB_CONNECT_TIMEOUT: float = float(os.getenv("LIFELOG_DB_CONNECT_TIMEOUT", "30.0"))
DB_RETRY_MAX: int = int(os.getenv("LIFELOG_DB_RETRY_MAX", "5"))
DB_RETRY_BASE_DELAY: float = float(os.getenv("LIFELOG_DB_RETRY_BASE_DELAY", "0.1"))
DB_RETRY_MAX_DELAY: float = float(os.getenv("LIFELOG_DB_RETRY_MAX_DELAY", "2.0"))
DB_RETRY_JITTER: float = float(os.getenv("LIFELOG_DB_RETRY_JITTER", "0.1"))

# --- Lifecycle ---
# Fixed: pending vs draft split. The admin floor lives in EventExtractionSettings.
CONFIDENCE_THRESHOLD: float = 0.7
UPCOMING_EVENTS_LIMIT: int = 5

# --- Reminders ---
REMINDER_MAX_MINUTES: int = 40320  # 4 weeks
REMINDER_MAX_PER_EVENT: int = 10

# --- Conflicts ---
CONFLICT_WINDOW_DAYS: int = 7
DEFAULT_EVENT_DURATION_MINUTES: int = 60  # used when end_datetime is missing
BACK_TO_BACK_GAP_MINUTES: int = 15

# --- API ---
API_LIST_LIMIT_DEFAULT: int = 20
API_LIST_LIMIT_MAX: int = 200
