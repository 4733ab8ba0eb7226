"""
GLM-TTS synthesis client.

Implements streaming and non-streaming Text-to-Speech against the Zhipu
GLM-TTS speech endpoint (OpenAI-compatible route: POST {base_url}/audio/speech).

Role in the system:
- Receives whole text fragments from the orchestrator.
- Splits fragments above TTS_MAX_INPUT_BYTES into a Chunked-Request Plan.
- Performs one synthesis request per chunk, strictly in plan order.
- Decodes the base64 audio carried in the event stream into raw PCM16.

Architectural constraints:
- No retries, timers, or backpressure logic live in this client.
- No state machine transitions or orchestration decisions.
- No playback.

Concurrency & cancellation:
- synthesize() is an async generator bound to the consuming task; chunk
  requests never overlap.
- Cancelling the consuming task aborts the in-flight request.

This module intentionally contains provider-specific logic only.
"""
from __future__ import annotations

import time
from typing import Any, AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from adapters.tts.base import SynthesisClient
from errors import SynthesisError
from observability.logger import log_event
from orchestrator.chunking import needs_split, split_text
from protocol.sse import iter_audio_payloads

from constants import (
    TTS_MAX_INPUT_BYTES,
    TTS_DEFAULT_MODEL,
    TTS_DEFAULT_VOICE,
    TTS_DEFAULT_SPEED,
    TTS_DEFAULT_VOLUME,
)


class GLMSynthesisClient(SynthesisClient):
    """
    GLM-TTS client.

    Design:
    - Text over the input ceiling is chunked here, not by the caller
    - Streaming requests ask for base64-encoded PCM over the event stream
    - Non-streaming requests ask for raw PCM so chunk results concatenate
    """

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str = TTS_DEFAULT_MODEL,
        voice: str = TTS_DEFAULT_VOICE,
        speed: float = TTS_DEFAULT_SPEED,
        volume: float = TTS_DEFAULT_VOLUME,
        max_input_bytes: int = TTS_MAX_INPUT_BYTES,
        session_id: str | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._voice = voice
        self._speed = speed
        self._volume = volume
        self._max_input_bytes = max_input_bytes
        self._session_id = session_id

    # ------------------------------------------------------------------
    # Voice settings
    # ------------------------------------------------------------------

    def set_voice(self, voice: str) -> None:
        self._voice = voice

    def set_speed(self, speed: float) -> None:
        """Speech speed, [0.5, 2.0]."""
        self._speed = speed

    def set_volume(self, volume: float) -> None:
        """Volume, (0, 10]."""
        self._volume = volume

    # ------------------------------------------------------------------
    # Public API (SynthesisClient contract)
    # ------------------------------------------------------------------

    async def synthesize(self, text: str) -> AsyncIterator[bytes]:
        if not text.strip():
            return

        plan = split_text(text, self._max_input_bytes)
        if needs_split(text, self._max_input_bytes):
            log_event({
                "event_type": "tts_chunk_plan",
                "session_id": self._session_id,
                "chunks": len(plan),
                "input_bytes": len(text.encode("utf-8")),
            })

        for chunk_index, chunk in enumerate(plan):
            t0 = time.monotonic_ns()
            audio_bytes = 0

            try:
                async with self._client.audio.speech.with_streaming_response.create(
                    model=self._model,
                    input=chunk,
                    voice=self._voice,  # type: ignore[arg-type]
                    response_format="pcm",
                    extra_body=self._extra_body(stream=True),
                ) as response:
                    async for audio in iter_audio_payloads(response.iter_bytes()):
                        audio_bytes += len(audio)
                        yield audio

            except (openai.APIError, httpx.HTTPError) as exc:
                # A failed chunk ends the whole logical stream
                log_event({
                    "event_type": "tts_stream_error",
                    "session_id": self._session_id,
                    "chunk_index": chunk_index,
                    "chunks": len(plan),
                    "status_code": getattr(exc, "status_code", None),
                    "reason": f"{type(exc).__name__}: {exc}",
                })
                return

            log_event({
                "event_type": "tts_chunk_complete",
                "session_id": self._session_id,
                "chunk_index": chunk_index,
                "chars": len(chunk),
                "audio_bytes": audio_bytes,
                "synth_ms": (time.monotonic_ns() - t0) // 1_000_000,
            })

    async def synthesize_full(self, text: str) -> bytes:
        if not text.strip():
            return b""

        parts: list[bytes] = []
        for chunk_index, chunk in enumerate(split_text(text, self._max_input_bytes)):
            try:
                response = await self._client.audio.speech.create(
                    model=self._model,
                    input=chunk,
                    voice=self._voice,  # type: ignore[arg-type]
                    response_format="pcm",
                    extra_body=self._extra_body(stream=False),
                )
            except openai.APIStatusError as exc:
                raise SynthesisError(
                    f"chunk {chunk_index}: API error (status {exc.status_code}): {exc}",
                    status_code=exc.status_code,
                ) from exc
            except (openai.APIError, httpx.HTTPError) as exc:
                raise SynthesisError(
                    f"chunk {chunk_index}: {type(exc).__name__}: {exc}"
                ) from exc

            parts.append(response.content)

        return b"".join(parts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _extra_body(self, *, stream: bool) -> dict[str, Any]:
        """Provider-specific request fields not modelled by the SDK."""
        body: dict[str, Any] = {"stream": stream}
        if stream:
            body["encode_format"] = "base64"
        if self._speed != 1.0:
            body["speed"] = self._speed
        if self._volume != 1.0:
            body["volume"] = self._volume
        return body
