# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json
from typing import Any, AsyncIterator, Callable

import httpx
from openai import AsyncOpenAI

from adapters.llm.streaming import OpenAICompatibleGenerationClient
from adapters.llm.prompts import SCRIPT_SYSTEM_PROMPT_V1


Handler = Callable[[httpx.Request], httpx.Response]


def _sse(*deltas: str) -> bytes:
    lines = [
        "data: " + json.dumps({"choices": [{"delta": {"content": d}}]}, ensure_ascii=False) + "\n\n"
        for d in deltas
    ]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def _client(handler: Handler, model: str = "glm-test") -> OpenAICompatibleGenerationClient:
    sdk = AsyncOpenAI(
        api_key="test-key",
        base_url="https://llm.test/v4",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return OpenAICompatibleGenerationClient(client=sdk, model=model, session_id="s1")


async def _collect(stream: AsyncIterator[str]) -> list[str]:
    return [item async for item in stream]


def test_script_stream_yields_deltas_and_posts_chat_request():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            headers={"content-type": "text/event-stream"},
            content=_sse("Welcome ", "to the ", "show."),
        )

    fragments = asyncio.run(_collect(_client(handler).generate_script("black holes")))

    assert fragments == ["Welcome ", "to the ", "show."]
    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/v4/chat/completions"

    body: dict[str, Any] = json.loads(requests[0].content)
    assert body["model"] == "glm-test"
    assert body["stream"] is True
    assert body["messages"] == [
        {"role": "system", "content": SCRIPT_SYSTEM_PROMPT_V1},
        {"role": "user", "content": "black holes"},
    ]


def test_answer_request_carries_question_and_context():
    bodies: list[dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, content=_sse("Because gravity."))

    client = _client(handler)
    fragments = asyncio.run(_collect(client.generate_answer("Why?", "black holes")))

    assert fragments == ["Because gravity."]
    system, user = bodies[0]["messages"]
    assert user == {"role": "user", "content": "Why?"}
    assert "black holes" in system["content"]


def test_status_error_ends_stream_without_raising(events):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "overloaded"}})

    fragments = asyncio.run(_collect(_client(handler).generate_script("topic")))

    assert fragments == []
    errors = [e for e in events if e["event_type"] == "llm_stream_error"]
    assert len(errors) == 1
    assert errors[0]["status_code"] == 500
    assert errors[0]["purpose"] == "script"


def test_connection_error_ends_stream_without_raising(events):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route to host", request=request)

    fragments = asyncio.run(_collect(_client(handler).generate_answer("q")))

    assert fragments == []
    assert any(e["event_type"] == "llm_stream_error" for e in events)


def test_mid_stream_failure_keeps_delivered_fragments(events):
    async def body() -> AsyncIterator[bytes]:
        yield _sse("first ")[: -len(b"data: [DONE]\n\n")]
        raise httpx.ReadError("connection reset")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    fragments = asyncio.run(_collect(_client(handler).generate_script("topic")))

    assert fragments == ["first "]
    assert any(e["event_type"] == "llm_stream_error" for e in events)
    assert not any(e["event_type"] == "llm_stream_done" for e in events)


def test_cancelling_consumer_aborts_stream():
    release = asyncio.Event()

    async def body() -> AsyncIterator[bytes]:
        yield _sse("one")[: -len(b"data: [DONE]\n\n")]
        await release.wait()
        yield _sse("two")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=body())

    async def _run() -> list[str]:
        received: list[str] = []
        first = asyncio.Event()

        async def consume() -> None:
            async for fragment in _client(handler).generate_script("topic"):
                received.append(fragment)
                first.set()

        task = asyncio.create_task(consume())
        await asyncio.wait_for(first.wait(), timeout=1)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return received

    assert asyncio.run(_run()) == ["one"]
