"""Fake chat completions upstream served in-process over ASGI."""

from __future__ import annotations

import json
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from starlette.responses import StreamingResponse

from chatclient.auth import KeyProvider
from chatclient.client import ChatCompletionsClient
from chatclient.settings import Settings

UPSTREAM_BASE_URL = "http://upstream.test/v1"
UPSTREAM_KEY = "sk-upstream"
UPSTREAM_HEADERS = {
    "openai-organization": "org-upstream",
    "x-request-id": "req_upstream",
    "openai-processing-ms": "12",
}


def format_data(data: dict[str, Any] | str) -> str:
    payload = data if isinstance(data, str) else json.dumps(data, separators=(",", ":"))
    return f"data: {payload}\n\n"


def sse_response(generator: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(
        generator,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", **UPSTREAM_HEADERS},
    )


def _chunk(completion_id: str, model: str, delta: dict[str, Any], finish_reason: str | None = None):
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def create_upstream_app() -> FastAPI:
    """Echo the last user message back word by word, with one extra chunk after [DONE]."""

    app = FastAPI()
    app.state.requests = []

    @app.post("/v1/chat/completions")
    async def chat_completions(request: Request):
        if request.headers.get("authorization") != f"Bearer {UPSTREAM_KEY}":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="bad key")

        body = await request.json()
        app.state.requests.append(body)
        model = body["model"]
        text = body["messages"][-1]["content"]
        words = text.split()
        if body.get("max_tokens"):
            words = words[: body["max_tokens"]]

        if not body.get("stream"):
            return JSONResponse(
                {
                    "id": "chatcmpl-echo",
                    "object": "chat.completion",
                    "created": int(time.time()),
                    "model": model,
                    "choices": [
                        {
                            "index": 0,
                            "message": {"role": "assistant", "content": " ".join(words)},
                            "finish_reason": "stop",
                        }
                    ],
                    "usage": {"prompt_tokens": len(text.split()), "completion_tokens": len(words)},
                },
                headers=UPSTREAM_HEADERS,
            )

        async def events() -> AsyncIterator[str]:
            yield format_data(_chunk("chatcmpl-echo", model, {"role": "assistant"}))
            for position, word in enumerate(words):
                content = word if position == 0 else f" {word}"
                yield format_data(_chunk("chatcmpl-echo", model, {"content": content}))
            yield format_data(_chunk("chatcmpl-echo", model, {}, finish_reason="stop"))
            yield format_data("[DONE]")
            yield format_data(_chunk("chatcmpl-echo", model, {"content": " LEAKED"}))

        return sse_response(events())

    return app


@pytest.fixture
def upstream_app() -> FastAPI:
    return create_upstream_app()


@pytest.fixture
def make_client(upstream_app):
    def factory(*, api_key: str = UPSTREAM_KEY, **kwargs: Any) -> ChatCompletionsClient:
        settings = Settings(openai_api_key=api_key, model="gpt-4", base_url=UPSTREAM_BASE_URL)
        transport = httpx.ASGITransport(app=upstream_app)
        return ChatCompletionsClient(
            settings=settings,
            key_provider=KeyProvider(settings=settings, search_paths=[]),
            http_client=httpx.AsyncClient(transport=transport),
            **kwargs,
        )

    return factory
