"""
Session state container.

Rules:
- Owned exclusively by one Orchestrator instance.
- Exposes only synchronized read and transition operations.
- The lock guards the state field only and is never held across I/O,
  so get() is safe from any thread or task at any time.
"""

from __future__ import annotations

import threading
from typing import Callable

from orchestrator.enums.state import State
from observability.logger import log_event


TransitionListener = Callable[[State, State], None]


class SessionStateMachine:
    """Lock-protected holder for the single active State value."""

    def __init__(self, *, session_id: str | None = None) -> None:
        self._state = State.IDLE
        self._lock = threading.Lock()
        self._session_id = session_id
        self._listeners: list[TransitionListener] = []

    def get(self) -> State:
        """Snapshot read."""
        with self._lock:
            return self._state

    def transition(self, new_state: State) -> State:
        """
        Move to new_state and return the previous state.

        Listeners are notified outside the lock.
        """
        with self._lock:
            prev = self._state
            self._state = new_state

        self._notify(prev, new_state)
        return prev

    def transition_if(self, expected: State, new_state: State) -> bool:
        """
        Atomic compare-and-set.

        Returns:
            True if the state was `expected` and is now `new_state`.
        """
        with self._lock:
            prev = self._state
            if prev is not expected:
                return False
            self._state = new_state

        self._notify(prev, new_state)
        return True

    def add_listener(self, listener: TransitionListener) -> None:
        """Observe every transition as (prev, new). Used by tests and metrics."""
        self._listeners.append(listener)

    def _notify(self, prev: State, new_state: State) -> None:
        log_event({
            "event_type": "state_changed",
            "session_id": self._session_id,
            "from": prev.value,
            "to": new_state.value,
        })

        for listener in list(self._listeners):
            listener(prev, new_state)
