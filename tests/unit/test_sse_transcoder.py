# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import base64
import json
from typing import Any, AsyncIterator

import httpx
import pytest

from protocol.sse import (
    extract_delta_content,
    iter_audio_payloads,
    iter_lines,
    iter_text_deltas,
)


def _event(content: Any) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]}, ensure_ascii=False) + "\n\n"


async def _body(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


def _types(events: list[dict[str, Any]]) -> list[str]:
    return [e["event_type"] for e in events]


async def _collect(stream: AsyncIterator[Any]) -> list[Any]:
    return [item async for item in stream]


def test_each_event_yields_one_delta_in_order():
    raw = (_event("Hel") + _event("lo") + _event(" world") + "data: [DONE]\n\n").encode()

    deltas = asyncio.run(_collect(iter_text_deltas(_body(raw))))

    assert deltas == ["Hel", "lo", " world"]


def test_lines_split_across_arbitrary_reads():
    raw = (_event("你好") + _event("，世界") + "data: [DONE]\n\n").encode()
    one_byte_reads = [raw[i:i + 1] for i in range(len(raw))]

    deltas = asyncio.run(_collect(iter_text_deltas(_body(*one_byte_reads))))

    assert deltas == ["你好", "，世界"]


def test_crlf_line_endings_are_accepted():
    raw = _event("a").replace("\n", "\r\n") + _event("b").replace("\n", "\r\n")

    deltas = asyncio.run(_collect(iter_text_deltas(_body(raw.encode()))))

    assert deltas == ["a", "b"]


def test_trailing_line_without_terminator_is_kept():
    raw = b"first\nsecond"

    lines = asyncio.run(_collect(iter_lines(_body(raw))))

    assert lines == ["first", "second"]


def test_malformed_event_is_skipped_and_stream_continues(events):
    raw = (_event("one") + "data: {not json\n\n" + "data: [1, 2]\n\n" + _event("two")).encode()

    deltas = asyncio.run(_collect(iter_text_deltas(_body(raw))))

    assert deltas == ["one", "two"]
    assert _types(events).count("sse_event_skipped") == 2


def test_done_sentinel_ends_stream_early():
    raw = (_event("kept") + "data: [DONE]\n\n" + _event("ignored")).encode()

    deltas = asyncio.run(_collect(iter_text_deltas(_body(raw))))

    assert deltas == ["kept"]


def test_non_data_lines_and_empty_deltas_are_ignored():
    raw = (
        ": keep-alive\n"
        "event: message\n"
        "data: \n"
        'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n'
        + _event("")
        + _event(None)
        + _event("text")
    ).encode()

    deltas = asyncio.run(_collect(iter_text_deltas(_body(raw))))

    assert deltas == ["text"]


def test_extract_delta_content_tolerates_odd_shapes():
    assert extract_delta_content({}) == ""
    assert extract_delta_content({"choices": []}) == ""
    assert extract_delta_content({"choices": [{"delta": None}]}) == ""
    assert extract_delta_content({"choices": [{"delta": {"content": 7}}]}) == ""
    assert extract_delta_content({"choices": [{"delta": {"content": "x"}}]}) == "x"


def test_audio_payloads_are_base64_decoded():
    pcm_a = b"\x01\x00\x02\x00"
    pcm_b = b"\xff\x7f" * 3
    raw = (
        _event(base64.b64encode(pcm_a).decode())
        + _event(base64.b64encode(pcm_b).decode())
        + "data: [DONE]\n\n"
    ).encode()

    audio = asyncio.run(_collect(iter_audio_payloads(_body(raw))))

    assert audio == [pcm_a, pcm_b]


def test_invalid_base64_payload_is_skipped(events):
    good = base64.b64encode(b"\x00\x01").decode()
    raw = (_event("***not base64***") + _event(good)).encode()

    audio = asyncio.run(_collect(iter_audio_payloads(_body(raw))))

    assert audio == [b"\x00\x01"]
    assert "sse_event_skipped" in _types(events)


def test_very_long_line_is_assembled():
    pcm = bytes(range(256)) * 4096  # 1 MiB of audio in one event
    raw = _event(base64.b64encode(pcm).decode()).encode()
    reads = [raw[i:i + 8192] for i in range(0, len(raw), 8192)]

    audio = asyncio.run(_collect(iter_audio_payloads(_body(*reads))))

    assert audio == [pcm]


def test_transport_error_propagates_after_delivered_events():
    async def failing_body() -> AsyncIterator[bytes]:
        yield _event("partial").encode()
        raise httpx.ReadError("connection reset")

    received: list[str] = []

    async def _run() -> None:
        async for delta in iter_text_deltas(failing_body()):
            received.append(delta)

    with pytest.raises(httpx.ReadError):
        asyncio.run(_run())

    assert received == ["partial"]
