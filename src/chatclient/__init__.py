"""Async client for chat completion APIs with streaming support."""

from .auth import Credentials, KeyProvider
from .client import ChatCompletionsClient
from .errors import (
    AuthenticationMissingError,
    ChatClientError,
    DecodeError,
    IncompleteStreamError,
    TransportError,
    UnsupportedOperationError,
)
from .models import (
    ChatCompletionResult,
    ChatMessage,
    Choice,
    DefaultRequestSpec,
    RequestSpec,
    ResolvedRequest,
    Role,
)
from .resolver import resolve
from .settings import Settings, get_settings
from .stream import StreamDecoder, StreamFrame, parse_line

__all__ = [
    "AuthenticationMissingError",
    "ChatClientError",
    "ChatCompletionResult",
    "ChatCompletionsClient",
    "ChatMessage",
    "Choice",
    "Credentials",
    "DecodeError",
    "DefaultRequestSpec",
    "IncompleteStreamError",
    "KeyProvider",
    "RequestSpec",
    "ResolvedRequest",
    "Role",
    "Settings",
    "StreamDecoder",
    "StreamFrame",
    "TransportError",
    "UnsupportedOperationError",
    "get_settings",
    "parse_line",
    "resolve",
]
