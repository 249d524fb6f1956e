"""Request and result models for the chat completions API."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_STOP_SEQUENCES = 4


class Role(str, Enum):
    """Chat roles understood by the API."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    DEVELOPER = "developer"


class ChatMessage(BaseModel):
    """One role-tagged turn of a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | None = None
    name: str | None = None


class RequestSpec(BaseModel):
    """Chat completion request where every generation parameter may be absent.

    ``None`` always means "not set". Zero values (``0``, ``0.0``, ``False``,
    an empty list) are real values and win over defaults during resolution.

    ``temperature`` and ``top_p`` are alternatives; the API recommends
    setting one of them, not both. This is not enforced.
    """

    model_config = ConfigDict(frozen=True)

    messages: list[ChatMessage] | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    top_p: float | None = None
    n: int | None = Field(default=None, description="Choices to generate per prompt.")
    presence_penalty: float | None = None
    frequency_penalty: float | None = None
    logprobs: int | None = None
    echo: bool | None = None
    user: str | None = None
    stop: list[str] | None = Field(default=None, max_length=MAX_STOP_SEQUENCES)
    best_of: int | None = None
    stream: bool | None = None

    @field_validator("stop", mode="before")
    @classmethod
    def _single_stop_sequence(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        if isinstance(value, tuple):
            return list(value)
        return value

    @classmethod
    def from_prompt(cls, prompt: str, **params: Any) -> "RequestSpec":
        """Build a request holding a single user message."""

        return cls(messages=[ChatMessage(role=Role.USER, content=prompt)], **params)

    @property
    def prompt(self) -> str | None:
        if not self.messages:
            return None
        return self.messages[0].content


# Defaults share the request shape; only the generation parameters are read.
DefaultRequestSpec = RequestSpec

GENERATION_FIELDS: tuple[str, ...] = (
    "max_tokens",
    "temperature",
    "top_p",
    "n",
    "presence_penalty",
    "frequency_penalty",
    "logprobs",
    "echo",
    "user",
    "stop",
    "best_of",
)


class ResolvedRequest(RequestSpec):
    """A request ready for the wire: model and stream flag are always concrete."""

    model: str
    messages: list[ChatMessage] = Field(..., min_length=1)
    stream: bool


class MessageDelta(BaseModel):
    """Partial message carried by one streamed chunk."""

    role: Role | None = None
    content: str | None = None


class Choice(BaseModel):
    index: int = 0
    message: ChatMessage | None = None
    delta: MessageDelta | None = None
    finish_reason: str | None = None
    logprobs: Any = None

    @property
    def text(self) -> str:
        if self.message is not None:
            return self.message.content or ""
        if self.delta is not None and self.delta.content:
            return self.delta.content
        return ""

    def __str__(self) -> str:
        return self.text


class Usage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatCompletionResult(BaseModel):
    """Result of a chat completion call, or one chunk of a streamed call.

    The last four fields never come from the body. They are filled in by the
    client from response headers and, for streams, the 1-based position of
    the chunk.
    """

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[Choice] = Field(default_factory=list)
    usage: Usage | None = None

    organization: str | None = Field(default=None, exclude=True)
    request_id: str | None = Field(default=None, exclude=True)
    processing_time: timedelta | None = Field(default=None, exclude=True)
    stream_index: int | None = Field(default=None, exclude=True)

    @property
    def created_at(self) -> datetime | None:
        if self.created is None:
            return None
        return datetime.fromtimestamp(self.created, tz=timezone.utc)

    def __str__(self) -> str:
        if self.choices:
            return str(self.choices[0])
        return f"ChatCompletionResult {self.id} has no valid output"
