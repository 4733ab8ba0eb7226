"""
Recording source contract.

This module defines the *interface only*: microphone capture, endpointing
and speech-to-text live in concrete implementations outside the core.

Key invariants:
- record() captures exactly one utterance and returns its transcription.
- Cancellation is the caller's: record() runs inside a cancellation scope
  and must give up promptly when its task is cancelled.
- The source makes no state transitions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class RecordingSource(ABC):
    """
    Abstract interface for capturing and transcribing a listener's question.

    Implementations are responsible for:
    - Capturing audio until the utterance ends
    - Transcribing it to text

    Non-responsibilities:
    - No state machine logic (PLAYING/THINKING/etc.)
    - No retries (a failed recording is reported, not repeated)
    - No playback control
    """

    @abstractmethod
    async def record(self) -> str:
        """
        Capture one utterance and return its text.

        Contract:
        - Blocks until an utterance is captured or the task is cancelled.
        - Raises on failure; the orchestrator logs the error and degrades
          back to PLAYING.
        - Must let asyncio.CancelledError propagate.
        """
        raise NotImplementedError
