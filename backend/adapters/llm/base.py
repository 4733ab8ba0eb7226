"""
Generation client contract.

Purpose:
- Define the interface for streaming text generation (podcast script and
  answers to listener questions).
- Keep orchestration, retries, timing, and cancellation policy OUT of the
  client.

Rules:
- This file contains NO logic.
- No retries.
- No chunking.
- No knowledge of TTS, playback, or the state machine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class GenerationClient(ABC):
    """
    Abstract base class for streaming generation clients.

    The client is a *dumb pipe*:
    prompt -> vendor -> ordered text fragments.

    Orchestrator responsibilities (NOT here):
    - When to start
    - When to cancel
    - Retry policy
    - Timeouts
    - Context construction
    - What to do with fragments
    """

    @abstractmethod
    def generate_script(self, prompt: str) -> AsyncIterator[str]:
        """
        Stream a podcast script about `prompt`.

        Contract:
        - Yields non-empty incremental text fragments in order.
        - Ends when the backend stream completes.
        - After a transport error nothing more is yielded; the error is
          logged, not raised.
        - Cancelling the consuming task aborts the underlying request.
        """
        raise NotImplementedError

    @abstractmethod
    def generate_answer(self, question: str, context: str = "") -> AsyncIterator[str]:
        """
        Stream an answer to a listener's question.

        Same shape as generate_script(); `context` may be empty.
        """
        raise NotImplementedError
