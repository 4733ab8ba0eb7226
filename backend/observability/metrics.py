"""
Metrics and timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Count occurrences per session (running totals)
- Emit metrics as JSONL events via observability.logger
- Never aggregate across sessions: one metric = one log event
- Provide safe APIs that prevent timer leaks

Metric names used by the orchestrator are the METRIC_* constants below.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Final, Iterator

from observability.logger import log_event


# -----------------------------------------------------------------------------
# Metric names
# -----------------------------------------------------------------------------

# Timers
METRIC_BARGE_IN_TO_PLAYBACK_STOP_MS: Final[str] = "barge_in_to_playback_stop_ms"
METRIC_QUESTION_RECORDING_MS: Final[str] = "question_recording_ms"
METRIC_ANSWER_PLAYBACK_MS: Final[str] = "answer_playback_ms"

# Counters
METRIC_INTERRUPTIONS: Final[str] = "interruptions"
METRIC_RECORDING_FAILURES: Final[str] = "recording_failures"


# -----------------------------------------------------------------------------
# Internal storage
# -----------------------------------------------------------------------------
# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}

# (metric_name, session_id) -> running total
_counters: dict[tuple[str, str | None], int] = {}


# -----------------------------------------------------------------------------
# Timers
# -----------------------------------------------------------------------------

def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns:
        timer_id (str): Opaque ID required to stop the timer later.

    Callers MUST call stop_timer() in a finally block
    unless using the `timed()` context manager.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    session_id: str | None = None,
    state: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a metric event.

    Returns:
        duration_ms if the timer existed, else None
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "session_id": session_id,
        "state": state,
        "details": details or {},
    })

    return duration_ms


# -----------------------------------------------------------------------------
# Counters
# -----------------------------------------------------------------------------

def increment(name: str, *, session_id: str | None = None, state: str | None = None) -> int:
    """
    Add one to a per-session counter and emit its running total.

    Returns:
        the new total
    """
    key = (name, session_id)
    total = _counters.get(key, 0) + 1
    _counters[key] = total

    log_event({
        "event_type": "METRIC_COUNTER",
        "metric": name,
        "value": total,
        "session_id": session_id,
        "state": state,
    })

    return total


def counter_value(name: str, *, session_id: str | None = None) -> int:
    """Current total of a counter (0 if never incremented)."""
    return _counters.get((name, session_id), 0)


def reset_counters(session_id: str | None) -> None:
    """Forget every counter of one session."""
    for key in [k for k in _counters if k[1] == session_id]:
        del _counters[key]


# -----------------------------------------------------------------------------
# Safe API: context manager
# -----------------------------------------------------------------------------

@contextmanager
def timed(
    name: str,
    *,
    session_id: str | None = None,
    state: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for measuring durations safely.

    Guarantees:
    - Timer is ALWAYS stopped (no leaks), also on cancellation
    - Metric is emitted exactly once
    - Exceptions inside the block are not suppressed

    Usage:
        with timed(METRIC_ANSWER_PLAYBACK_MS, session_id=self._session_id):
            await self._speak_answer(question, context)
    """
    timer_id = start_timer(name)
    try:
        yield
    finally:
        stop_timer(
            timer_id,
            session_id=session_id,
            state=state,
            details=details,
        )
