"""Decoding of ``text/event-stream`` chat completion bodies."""

from __future__ import annotations

from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum

import structlog

from .codec import decode_result
from .errors import IncompleteStreamError
from .models import ChatCompletionResult

logger = structlog.get_logger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

ORGANIZATION_HEADER = "openai-organization"
REQUEST_ID_HEADER = "x-request-id"
PROCESSING_MS_HEADER = "openai-processing-ms"


class FrameKind(str, Enum):
    SENTINEL = "sentinel"
    BLANK = "blank"
    PAYLOAD = "payload"


@dataclass(frozen=True)
class StreamFrame:
    kind: FrameKind
    payload: str | None = None


def parse_line(line: str) -> StreamFrame:
    """Classify one line of the event stream."""

    if line.startswith(DATA_PREFIX):
        line = line[len(DATA_PREFIX) :]

    if line == DONE_SENTINEL:
        return StreamFrame(FrameKind.SENTINEL)
    if not line.strip():
        return StreamFrame(FrameKind.BLANK)
    return StreamFrame(FrameKind.PAYLOAD, line.strip())


@dataclass(frozen=True)
class ResponseMetadata:
    organization: str | None = None
    request_id: str | None = None
    processing_time: timedelta | None = None

    def apply(self, result: ChatCompletionResult) -> ChatCompletionResult:
        result.organization = self.organization
        result.request_id = self.request_id
        result.processing_time = self.processing_time
        return result


def extract_metadata(headers: Mapping[str, str] | None) -> ResponseMetadata:
    """Read response metadata headers; anything missing or malformed stays ``None``."""

    return ResponseMetadata(
        organization=_header(headers, ORGANIZATION_HEADER),
        request_id=_header(headers, REQUEST_ID_HEADER),
        processing_time=_processing_time(headers),
    )


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    try:
        return headers.get(name) or None  # type: ignore[union-attr]
    except Exception:  # noqa: BLE001
        return None


def _processing_time(headers: Mapping[str, str] | None) -> timedelta | None:
    try:
        return timedelta(milliseconds=int(headers[PROCESSING_MS_HEADER]))  # type: ignore[index]
    except Exception:  # noqa: BLE001
        return None


class StreamDecoder:
    """Turns the lines of one streamed response into chat completion chunks.

    One decoder serves one response. The sequence index lives inside
    :meth:`decode`, so every call starts counting at 1.

    A body that ends without ``[DONE]`` is treated as a normal end and only
    logged, unless ``require_sentinel`` is set, in which case
    :class:`IncompleteStreamError` is raised after the last chunk.
    """

    def __init__(
        self,
        headers: Mapping[str, str] | None = None,
        *,
        require_sentinel: bool = False,
    ) -> None:
        self._metadata = extract_metadata(headers)
        self._require_sentinel = require_sentinel

    async def decode(self, lines: AsyncIterator[str]) -> AsyncIterator[ChatCompletionResult]:
        index = 0
        async for line in lines:
            frame = parse_line(line)
            if frame.kind is FrameKind.SENTINEL:
                logger.debug("chat_completion.stream_finished", frames=index)
                return
            if frame.kind is FrameKind.BLANK:
                continue

            # Decode errors propagate and end the sequence.
            result = decode_result(frame.payload or "")
            index += 1
            result.stream_index = index
            yield self._metadata.apply(result)

        logger.warning("chat_completion.stream_closed_early", frames=index)
        if self._require_sentinel:
            raise IncompleteStreamError(
                f"Stream closed after {index} chunk(s) without {DONE_SENTINEL}",
                frames_received=index,
            )
