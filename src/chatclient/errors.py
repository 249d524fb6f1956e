"""Exceptions raised by the chat completions client."""

from __future__ import annotations


class ChatClientError(RuntimeError):
    """Base class for every error raised by this package."""


class AuthenticationMissingError(ChatClientError):
    """Raised when no API key can be resolved at call time."""


class UnsupportedOperationError(ChatClientError):
    """Raised when the configured model cannot serve the requested operation."""


class TransportError(ChatClientError):
    """Raised when the API answers with a non-success status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        request_body: str,
        response_body: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.request_body = request_body
        self.response_body = response_body
        self.request_id = request_id


class DecodeError(ChatClientError):
    """Raised when a response body or stream payload is not a valid result."""

    def __init__(self, message: str, *, payload: str) -> None:
        super().__init__(message)
        self.payload = payload


class IncompleteStreamError(ChatClientError):
    """Raised in strict mode when a stream closes before the terminal sentinel."""

    def __init__(self, message: str, *, frames_received: int) -> None:
        super().__init__(message)
        self.frames_received = frames_received
