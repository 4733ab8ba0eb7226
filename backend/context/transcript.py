"""
Spoken-script transcript.

Responsibilities:
- Record the script fragments actually delivered to the listener
- Record question/answer exchanges
- Render a bounded context string for answer generation

Non-responsibilities:
- No orchestration decisions
- No prompt formatting beyond plain text
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from observability.logger import log_event
from constants import MAX_CONTEXT_CHARS


Role = Literal["script", "question", "answer"]


@dataclass(frozen=True)
class Entry:
    """Single transcript entry."""
    role: Role
    text: str


class ScriptTranscript:
    """
    Mutable transcript owned by the orchestrator for one session.

    Invariants:
    - Entries are stored in chronological order
    - Total stored characters never exceed max_chars, except for a single
      oversized entry which is kept (with a warning)
    """

    def __init__(self, session_id: str | None = None, *, max_chars: int = MAX_CONTEXT_CHARS) -> None:
        self._session_id = session_id
        self._max_chars = max_chars
        self._entries: list[Entry] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def add_script(self, text: str) -> None:
        """Append a delivered script fragment, merging with a preceding one."""
        if self._entries and self._entries[-1].role == "script":
            last = self._entries.pop()
            text = last.text + text
        # Keep the most recent part of a long-running script
        text = text[-self._max_chars:]
        self._append(Entry(role="script", text=text))

    def add_exchange(self, question: str, answer: str) -> None:
        self._append(Entry(role="question", text=question))
        self._append(Entry(role="answer", text=answer))

    def script_text(self) -> str:
        """All retained script text, in order."""
        return "".join(e.text for e in self._entries if e.role == "script")

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _append(self, entry: Entry) -> None:
        self._entries.append(entry)
        self._truncate()

    def _truncate(self) -> None:
        while sum(len(e.text) for e in self._entries) > self._max_chars:
            if len(self._entries) == 1:
                log_event({
                    "event_type": "transcript_single_entry_oversized",
                    "session_id": self._session_id,
                    "role": self._entries[0].role,
                    "char_count": len(self._entries[0].text),
                })
                break

            dropped = self._entries.pop(0)
            log_event({
                "event_type": "transcript_entry_dropped",
                "session_id": self._session_id,
                "role": dropped.role,
                "char_count": len(dropped.text),
            })
