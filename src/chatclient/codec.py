"""JSON encoding of requests and decoding of results."""

from __future__ import annotations

from pydantic import ValidationError

from .errors import DecodeError
from .models import ChatCompletionResult, ResolvedRequest


def encode_request(request: ResolvedRequest) -> str:
    """Serialize for the wire; absent fields are omitted, never sent as null."""

    return request.model_dump_json(exclude_none=True)


def decode_result(payload: str | bytes) -> ChatCompletionResult:
    try:
        return ChatCompletionResult.model_validate_json(payload)
    except ValidationError as exc:
        text = payload.decode(errors="replace") if isinstance(payload, bytes) else payload
        raise DecodeError(f"Invalid chat completion payload: {_truncate(text)}", payload=text) from exc


def _truncate(text: str, limit: int = 200) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}...[truncated {len(text) - limit} chars]"
