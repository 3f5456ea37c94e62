"""
Logger setup for the lifelog package.

One stream handler is attached to the "lifelog" logger (not the root, so
uvicorn keeps its own handlers). Levels come from the environment:

    LIFELOG_LOG_LEVEL   default level for every lifelog logger (falls back to LOG_LEVEL)
    LIFELOG_LOG_LEVELS  per-logger overrides, e.g.
                        "lifelog.events.repository=DEBUG,lifelog.api=WARNING"
"""

from __future__ import annotations

import logging
import os
from typing import Final

PACKAGE_LOGGER: Final[str] = "lifelog"
_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_handler: logging.Handler | None = None


def _level(name: str | None, default: int = logging.INFO) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default


def _overrides() -> dict[str, int]:
    overrides: dict[str, int] = {}
    for item in os.getenv("LIFELOG_LOG_LEVELS", "").split(","):
        name, sep, level = item.partition("=")
        if sep and name.strip():
            overrides[name.strip()] = _level(level)
    return overrides


def configure_logging(force: bool = False) -> logging.Logger:
    """
    Attach the package handler and apply levels from the environment.

    Idempotent unless force=True, which re-reads the environment.
    """
    global _handler

    package = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None and not force:
        return package

    if _handler is None:
        _handler = logging.StreamHandler()
        _handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        package.addHandler(_handler)

    package.setLevel(_level(os.getenv("LIFELOG_LOG_LEVEL", os.getenv("LOG_LEVEL"))))
    for name, level in _overrides().items():
        logging.getLogger(name).setLevel(level)

    return package


def get_logger(name: str) -> logging.Logger:
    """Module logger under the lifelog hierarchy."""
    configure_logging()
    if name != PACKAGE_LOGGER and not name.startswith(f"{PACKAGE_LOGGER}."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)
