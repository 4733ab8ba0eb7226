"""
Synthesis client contract.

This module defines the *interface only*.

Key invariants:
- The backend input ceiling is the client's problem: long text is split
  into a Chunked-Request Plan internally, and the caller still sees a single
  logical audio stream.
- Chunk requests are sequential, never concurrent, so audio order holds.
- The client makes no state transitions and never retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class SynthesisClient(ABC):
    """
    Abstract interface for a text-to-speech client.

    Implementations are responsible for:
    - Splitting over-long text (see orchestrator.chunking)
    - Calling the TTS provider once per chunk, in plan order
    - Decoding the provider's transport encoding into raw audio bytes

    Non-responsibilities:
    - No playback
    - No state machine logic
    - No retries or timers
    """

    @abstractmethod
    def synthesize(self, text: str) -> AsyncIterator[bytes]:
        """
        Stream raw audio for `text`.

        Contract:
        - Empty input yields an immediately-closed stream.
        - Yields audio chunks in decode order, chunk plan order first.
        - A failed chunk request ends the whole stream early (logged).
        - Cancelling the consuming task aborts the in-flight request.
        """
        raise NotImplementedError

    @abstractmethod
    async def synthesize_full(self, text: str) -> bytes:
        """
        Non-streaming variant: same chunking, full responses concatenated.

        Raises:
            SynthesisError on any failed chunk request.
        """
        raise NotImplementedError
