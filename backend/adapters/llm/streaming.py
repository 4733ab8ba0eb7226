"""Streaming generation client for OpenAI-compatible chat backends."""
from __future__ import annotations

import time
from typing import Any, AsyncIterator

import httpx
import openai
from openai import AsyncOpenAI

from adapters.llm.base import GenerationClient
from adapters.llm.prompts import SCRIPT_SYSTEM_PROMPT_V1, answer_system_prompt
from observability.logger import log_event
from protocol.sse import iter_text_deltas


class OpenAICompatibleGenerationClient(GenerationClient):
    """
    Concrete streaming generation client.

    Design notes:
    - One client instance may serve many sequential or overlapping streams.
    - Each stream is an async generator bound to the consuming task, so
      cancelling that task aborts the HTTP request.
    - The raw response body is parsed by protocol.sse rather than by the
      SDK's own stream decoder, so every backend speaking the same event
      framing is handled identically.
    - Client is responsible ONLY for:
        - Talking to the chat-completions endpoint
        - Yielding text deltas
    - Client does NOT:
        - Retry (build the SDK client with max_retries=0)
        - Chunk text
        - Manage timers
    """

    def __init__(
        self,
        *,
        client: AsyncOpenAI,
        model: str,
        session_id: str | None = None,
    ) -> None:
        """
        Args:
            client:
                Vendor SDK client, already configured with base_url/api_key.
            model:
                Model identifier string.
            session_id:
                Session identifier for logging/correlation.
        """
        self._client = client
        self._model = model
        self._session_id = session_id

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate_script(self, prompt: str) -> AsyncIterator[str]:
        messages = [
            {"role": "system", "content": SCRIPT_SYSTEM_PROMPT_V1},
            {"role": "user", "content": prompt},
        ]
        return self._stream_chat(messages, purpose="script")

    def generate_answer(self, question: str, context: str = "") -> AsyncIterator[str]:
        messages = [
            {"role": "system", "content": answer_system_prompt(context)},
            {"role": "user", "content": question},
        ]
        return self._stream_chat(messages, purpose="answer")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _stream_chat(
        self,
        messages: list[dict[str, Any]],
        *,
        purpose: str,
    ) -> AsyncIterator[str]:
        """
        Stream one chat completion.

        Guarantees:
        - Transport errors end the stream and are logged, never raised
        - Cancellation propagates
        """
        t0 = time.monotonic_ns()
        fragments = 0
        chars = 0

        log_event({
            "event_type": "llm_stream_started",
            "session_id": self._session_id,
            "purpose": purpose,
            "model": self._model,
        })

        try:
            async with self._client.chat.completions.with_streaming_response.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                stream=True,
            ) as response:
                async for delta in iter_text_deltas(response.iter_bytes()):
                    fragments += 1
                    chars += len(delta)
                    yield delta

        except openai.APIStatusError as exc:
            log_event({
                "event_type": "llm_stream_error",
                "session_id": self._session_id,
                "purpose": purpose,
                "status_code": exc.status_code,
                "reason": f"{type(exc).__name__}: {exc}",
            })
            return

        except (openai.APIError, httpx.HTTPError) as exc:
            log_event({
                "event_type": "llm_stream_error",
                "session_id": self._session_id,
                "purpose": purpose,
                "reason": f"{type(exc).__name__}: {exc}",
            })
            return

        log_event({
            "event_type": "llm_stream_done",
            "session_id": self._session_id,
            "purpose": purpose,
            "fragments": fragments,
            "chars": chars,
            "duration_ms": (time.monotonic_ns() - t0) // 1_000_000,
        })
