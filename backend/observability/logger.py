"""
JSONL event logger.

Rules:
- Write one event per line
- Output to stdout
- No buffering, no batching
- No side effects beyond logging
- Events may carry a "level" (DEBUG, INFO, WARNING, ERROR; INFO when
  absent); events below the configured minimum are dropped
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print

# Flipped by configure(); plain "event_type key=value" lines when False
_json_lines: bool = True

LEVELS: dict[str, int] = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}

# Events below this level are dropped
_min_level: int = LEVELS["INFO"]


def configure(*, json_lines: bool, min_level: str = "INFO") -> None:
    """
    Select JSONL (default) or compact human-readable output, and the
    lowest level that is still written.

    Raises:
        ValueError for an unknown level name.
    """
    global _json_lines, _min_level  # pylint: disable=global-statement
    level = LEVELS.get(min_level.upper())
    if level is None:
        raise ValueError(f"unknown log level {min_level!r}, expected one of {sorted(LEVELS)}")
    _json_lines = json_lines
    _min_level = level


def now_ms() -> int:
    """Wall-clock timestamp in milliseconds (ordering/readability only)."""
    return time.time_ns() // 1_000_000


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single event line to stdout.

    The caller supplies the event fields; ts_ms is filled in
    when missing.

    This function:
    - Serializes to JSON (or key=value text)
    - Writes exactly one line
    - Flushes immediately (no buffering)
    - Never raises
    """
    if LEVELS.get(str(event.get("level", "INFO")).upper(), LEVELS["INFO"]) < _min_level:
        return

    payload: dict[str, Any] = dict(event)
    payload.setdefault("ts_ms", now_ms())

    if not _json_lines:
        _print(_format_plain(payload))
        return

    try:
        line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback, logging must never crash the runtime
        fallback: dict[str, Any] = {
            "ts_ms": payload.get("ts_ms"),
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)


def _format_plain(payload: Mapping[str, Any]) -> str:
    head = str(payload.get("event_type", "EVENT"))
    rest = " ".join(
        f"{k}={v!r}" for k, v in payload.items() if k != "event_type"
    )
    return f"{head} {rest}" if rest else head
