"""
In-process telemetry for the events service.

Counters are dotted names grouped by prefix (``classifier.pending``,
``lifecycle.confirm``, ``lifecycle.rejected.complete``, ``ingest.filtered``,
``conflicts.overlap`` ...). Latency samples are kept per metric in a bounded
window. Nothing is shipped to an external backend; ``snapshot()`` feeds the
``/health/metrics`` endpoint and tests assert on ``get_counter``.

Structured events never carry user-entered text: fields named in
REDACTED_FIELDS are replaced before logging.
"""

from __future__ import annotations

import contextlib
import time
from collections import Counter, deque
from collections.abc import Iterator
from threading import Lock
from typing import Any

from lifelog.observability.logging import get_logger

logger = get_logger("lifelog.telemetry")

LATENCY_SAMPLE_LIMIT = 500

REDACTED_FIELDS = frozenset(
    {"title", "description", "source_text", "location", "participants", "message"}
)


class _Registry:
    def __init__(self) -> None:
        self.lock = Lock()
        self.counters: Counter[str] = Counter()
        self.latencies: dict[str, deque[float]] = {}

    def clear(self) -> None:
        with self.lock:
            self.counters.clear()
            self.latencies.clear()


_registry = _Registry()


def _latency_name(metric_name: str) -> str:
    if metric_name.endswith(".latency"):
        return f"{metric_name}_ms"
    return metric_name


def log_event(event_name: str, **fields: Any) -> None:
    """Structured info log; user text fields are redacted."""
    safe = {
        key: "[redacted]" if key in REDACTED_FIELDS else value for key, value in fields.items()
    }
    logger.info("event=%s %s", event_name, safe)


def counter(name: str, increment: int = 1) -> int:
    with _registry.lock:
        _registry.counters[name] += increment
        value = _registry.counters[name]
    logger.debug("counter=%s value=%s", name, value)
    return value


def get_counter(name: str) -> int:
    with _registry.lock:
        return _registry.counters.get(name, 0)


def counters_with_prefix(prefix: str) -> dict[str, int]:
    """Counters under a dotted prefix, keyed by the remainder of the name.

    ``counters_with_prefix("lifecycle")`` -> ``{"confirm": 3, "rejected.complete": 1}``
    """
    head = prefix.rstrip(".") + "."
    with _registry.lock:
        return {
            name[len(head):]: value
            for name, value in sorted(_registry.counters.items())
            if name.startswith(head)
        }


@contextlib.contextmanager
def time_block(metric_name: str) -> Iterator[None]:
    """Record the wall time of the block in milliseconds."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        name = _latency_name(metric_name)
        with _registry.lock:
            samples = _registry.latencies.setdefault(name, deque(maxlen=LATENCY_SAMPLE_LIMIT))
            samples.append(elapsed_ms)
        logger.debug("timing=%s ms=%.3f", name, elapsed_ms)


def get_latency_stats(metric_name: str) -> dict[str, float]:
    """count, min, max, avg, p50 and p95 over the retained samples (ms)."""
    with _registry.lock:
        samples = sorted(_registry.latencies.get(_latency_name(metric_name), ()))

    if not samples:
        return {"count": 0, "min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}

    count = len(samples)
    return {
        "count": count,
        "min": samples[0],
        "max": samples[-1],
        "avg": sum(samples) / count,
        "p50": samples[count // 2],
        "p95": samples[min(int(count * 0.95), count - 1)],
    }


def snapshot() -> dict[str, Any]:
    """All counters grouped by their first name segment, plus latency stats."""
    with _registry.lock:
        names = sorted(_registry.counters)
        latency_names = sorted(_registry.latencies)

    groups = sorted({name.split(".", 1)[0] for name in names})
    return {
        "counters": {group: counters_with_prefix(group) for group in groups},
        "latencies": {name: get_latency_stats(name) for name in latency_names},
    }


def reset_counters() -> None:
    """Clear counters and latency samples."""
    _registry.clear()
