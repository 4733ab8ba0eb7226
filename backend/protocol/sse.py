"""
Incremental event-stream (SSE) transcoder.

Both network backends answer a streaming request with the same framing:

    data: {"choices":[{"delta":{"content":"..."}}]}\n
    \n
    data: [DONE]\n

Text backends put incremental text in choices[0].delta.content; the speech
backend puts a base64-encoded PCM slice in the same field.

Rules:
- Lines have no maximum length (base64 audio lines can be very large);
  they are assembled in a growable buffer across arbitrary read boundaries.
- Non-data lines are ignored.
- The [DONE] sentinel ends the stream early, without error.
- A malformed individual event is skipped; the stream continues.
- Transport errors raised by the body iterator propagate unchanged.
- The only suspension point is the body read, so cancelling the consuming
  task aborts promptly.
"""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, AsyncIterable, AsyncIterator

from observability.logger import log_event
from constants import SSE_DATA_PREFIX, SSE_DONE_SENTINEL


_NEWLINE = b"\n"


# =============================================================================
# Line assembly
# =============================================================================

async def iter_lines(body: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """
    Yield decoded text lines from a raw byte stream.

    Line terminators (\\n or \\r\\n) are stripped. A trailing line without a
    terminator is yielded at EOF.
    """
    buffer = bytearray()

    async for chunk in body:
        if not chunk:
            continue
        buffer.extend(chunk)

        start = 0
        while True:
            idx = buffer.find(_NEWLINE, start)
            if idx == -1:
                break
            yield _decode_line(buffer[start:idx])
            start = idx + 1

        if start:
            del buffer[:start]

    if buffer:
        yield _decode_line(buffer)


def _decode_line(raw: bytes | bytearray) -> str:
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return bytes(raw).decode("utf-8", errors="replace")


# =============================================================================
# Event payloads
# =============================================================================

async def iter_sse_data(body: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """
    Yield the payload of each data line, in order, until the sentinel.
    """
    async for line in iter_lines(body):
        if not line.startswith(SSE_DATA_PREFIX):
            continue

        data = line[len(SSE_DATA_PREFIX):]
        if data == SSE_DONE_SENTINEL:
            return
        if not data:
            continue

        yield data


async def iter_json_events(body: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """
    Yield each data payload decoded as a JSON object.

    Non-JSON payloads and JSON values that are not objects are skipped.
    """
    async for data in iter_sse_data(body):
        try:
            event = json.loads(data)
        except ValueError as exc:
            log_event({
                "event_type": "sse_event_skipped",
                "level": "WARNING",
                "reason": f"invalid_json: {exc}",
                "payload_len": len(data),
            })
            continue

        if not isinstance(event, dict):
            log_event({
                "event_type": "sse_event_skipped",
                "level": "WARNING",
                "reason": "not_an_object",
                "payload_len": len(data),
            })
            continue

        yield event


def extract_delta_content(event: dict[str, Any]) -> str:
    """
    Return choices[0].delta.content, or "" when the event does not carry it.
    """
    try:
        content = event["choices"][0]["delta"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


async def iter_text_deltas(body: AsyncIterable[bytes]) -> AsyncIterator[str]:
    """Yield incremental text deltas from a chat-completions stream."""
    async for event in iter_json_events(body):
        delta = extract_delta_content(event)
        if delta:
            yield delta


async def iter_audio_payloads(body: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """
    Yield raw audio bytes from a speech stream carrying base64 content.

    Payloads that fail base64 decoding are skipped.
    """
    async for event in iter_json_events(body):
        encoded = extract_delta_content(event)
        if not encoded:
            continue

        try:
            audio = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as exc:
            log_event({
                "event_type": "sse_event_skipped",
                "level": "WARNING",
                "reason": f"invalid_base64: {exc}",
                "payload_len": len(encoded),
            })
            continue

        if audio:
            yield audio
