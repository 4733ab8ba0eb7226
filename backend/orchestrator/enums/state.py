"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the control-plane states.
- No behavior, no helper methods, no side effects.
- Transitions are performed exclusively by the orchestrator.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    High-level control states for a single podcast session.

    UPDATING is reserved for mid-script revision and is never entered.
    """

    IDLE = "IDLE"
    PLAYING = "PLAYING"
    INTERRUPTED = "INTERRUPTED"
    THINKING = "THINKING"
    UPDATING = "UPDATING"
