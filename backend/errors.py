"""
Exception taxonomy for the player core.

Rules:
- Transport failures and deliberate cancellation are different types,
  so call sites can tell an aborted network call from a preempted one.
- Decode failures of individual stream events are NOT exceptions here;
  the transcoder skips them.
"""

from __future__ import annotations


class PodcastPlayerError(Exception):
    """Base class for all player errors."""


class TransportError(PodcastPlayerError):
    """Connection failure, timeout or non-2xx status from a backend."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SynthesisError(TransportError):
    """A non-streaming synthesis request failed."""


class ScopeCancelled(PodcastPlayerError):
    """
    Work was preempted because its cancellation scope was cancelled.

    This is a deliberate early termination, never a failure.
    """

    def __init__(self, scope_name: str) -> None:
        super().__init__(f"scope cancelled: {scope_name}")
        self.scope_name = scope_name


class OrchestratorBusyError(PodcastPlayerError):
    """start() was called while a session is already active."""
