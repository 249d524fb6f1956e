"""Async client for the chat completions endpoint."""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from typing import Any

import httpx
import structlog

from .auth import Credentials, KeyProvider
from .codec import decode_result, encode_request
from .errors import TransportError, UnsupportedOperationError
from .models import ChatCompletionResult, ChatMessage, DefaultRequestSpec, RequestSpec, ResolvedRequest
from .resolver import EMPTY_DEFAULTS, resolve
from .settings import Settings, get_settings
from .stream import StreamDecoder, extract_metadata

logger = structlog.get_logger(__name__)

CHAT_MODEL_PREFIX = "gpt-"

ResultHandler = Callable[[int, ChatCompletionResult], Any]


class ChatCompletionsClient:
    """Thin async wrapper around ``POST /chat/completions``.

    ``defaults`` is a caller-owned, frozen :class:`RequestSpec`. Calls that take
    a prompt plus keyword parameters fall back to it field by field; calls that
    take a prebuilt request or a message list send exactly what they were
    given. Any call taking ``defaults=`` uses that object instead of the one
    given here.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        api_key: str | None = None,
        model: str | None = None,
        defaults: DefaultRequestSpec | None = None,
        key_provider: KeyProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        require_sentinel: bool = False,
    ) -> None:
        self._settings = settings or get_settings()
        self.model = model or self._settings.model
        self.defaults = defaults if defaults is not None else DefaultRequestSpec()
        self._keys = key_provider or KeyProvider(api_key, settings=self._settings)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self._settings.timeout_seconds)
        self._require_sentinel = require_sentinel

    async def __aenter__(self) -> "ChatCompletionsClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def endpoint(self) -> str:
        return f"{self._settings.base_url.rstrip('/')}/chat/completions"

    # Buffered calls

    async def create_chat_completion(self, request: RequestSpec) -> ChatCompletionResult:
        """Send ``request`` as given; no defaults are applied."""

        return await self._complete(request, EMPTY_DEFAULTS)

    async def create_chat_completions(
        self, request: RequestSpec, num_outputs: int = 5
    ) -> ChatCompletionResult:
        """Ask for ``num_outputs`` choices for the same request."""

        return await self.create_chat_completion(request.model_copy(update={"n": num_outputs}))

    async def create_chat_completion_from_prompt(
        self,
        prompt: str,
        *stop_sequences: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        n: int | None = None,
        presence_penalty: float | None = None,
        frequency_penalty: float | None = None,
        logprobs: int | None = None,
        echo: bool | None = None,
        user: str | None = None,
        best_of: int | None = None,
        defaults: DefaultRequestSpec | None = None,
    ) -> ChatCompletionResult:
        """Send a single user prompt; each unset parameter comes from the defaults."""

        request = _prompt_request(
            prompt,
            stop_sequences,
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            n=n,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
            logprobs=logprobs,
            echo=echo,
            user=user,
            best_of=best_of,
        )
        return await self._complete(request, defaults if defaults is not None else self.defaults)

    async def create_chat_completion_from_messages(
        self, messages: Sequence[ChatMessage]
    ) -> ChatCompletionResult:
        """Send a multi-turn conversation with no generation parameters."""

        return await self._complete(RequestSpec(messages=list(messages)), EMPTY_DEFAULTS)

    async def create_and_format_chat_completion(self, request: RequestSpec) -> str:
        """Return the prompt followed by the generated text."""

        result = await self.create_chat_completion(request)
        return f"{request.prompt or ''}{result}"

    # Streaming calls

    async def stream_chat_completion(self, request: RequestSpec, handler: ResultHandler) -> None:
        """Call ``handler(index, result)`` for each streamed chunk, in arrival order.

        Returns once the stream is done. ``handler`` may be a coroutine function.
        """

        async with aclosing(self.iter_chat_completion(request)) as results:
            async for result in results:
                outcome = handler(result.stream_index or 0, result)
                if inspect.isawaitable(outcome):
                    await outcome

    async def iter_chat_completion(self, request: RequestSpec) -> AsyncIterator[ChatCompletionResult]:
        """Yield streamed chunks for ``request`` as given; no defaults are applied."""

        async with aclosing(self._stream(request, EMPTY_DEFAULTS)) as results:
            async for result in results:
                yield result

    async def iter_chat_completion_from_prompt(
        self,
        prompt: str,
        *stop_sequences: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        n: int | None = None,
        presence_penalty: float | None = None,
        frequency_penalty: float | None = None,
        logprobs: int | None = None,
        echo: bool | None = None,
        user: str | None = None,
        best_of: int | None = None,
        defaults: DefaultRequestSpec | None = None,
    ) -> AsyncIterator[ChatCompletionResult]:
        """Stream a single user prompt; each unset parameter comes from the defaults."""

        request = _prompt_request(
            prompt,
            stop_sequences,
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            n=n,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
            logprobs=logprobs,
            echo=echo,
            user=user,
            best_of=best_of,
        )
        defaults = defaults if defaults is not None else self.defaults
        async with aclosing(self._stream(request, defaults)) as results:
            async for result in results:
                yield result

    # Internals

    def _prepare(
        self, request: RequestSpec, defaults: DefaultRequestSpec, *, stream: bool
    ) -> tuple[ResolvedRequest, dict[str, str]]:
        credentials = self._keys.get()
        if not self.model.startswith(CHAT_MODEL_PREFIX):
            raise UnsupportedOperationError(
                f"{self.model} does not implement chat completion; "
                f"use a model whose name starts with '{CHAT_MODEL_PREFIX}'."
            )
        resolved = resolve(request, defaults, model=self.model, stream=stream)
        return resolved, self._headers(credentials)

    def _headers(self, credentials: Credentials) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {credentials.api_key}",
            "User-Agent": self._settings.user_agent,
            "Content-Type": "application/json",
        }
        if credentials.organization:
            headers["OpenAI-Organization"] = credentials.organization
        return headers

    async def _complete(
        self, request: RequestSpec, defaults: DefaultRequestSpec
    ) -> ChatCompletionResult:
        resolved, headers = self._prepare(request, defaults, stream=False)
        body = encode_request(resolved)
        log = logger.bind(model=resolved.model, stream=False)
        log.info("chat_completion.request", bytes_out=len(body))

        response = await self._client.post(self.endpoint, content=body, headers=headers)
        if not response.is_success:
            error = _transport_error(response, body, response.text)
            log.warning("chat_completion.failed", status_code=error.status_code, request_id=error.request_id)
            raise error

        result = decode_result(response.content)
        return extract_metadata(response.headers).apply(result)

    async def _stream(
        self, request: RequestSpec, defaults: DefaultRequestSpec
    ) -> AsyncIterator[ChatCompletionResult]:
        resolved, headers = self._prepare(request, defaults, stream=True)
        body = encode_request(resolved)
        log = logger.bind(model=resolved.model, stream=True)
        log.info("chat_completion.request", bytes_out=len(body))

        async with self._client.stream("POST", self.endpoint, content=body, headers=headers) as response:
            if not response.is_success:
                raw = await response.aread()
                error = _transport_error(response, body, raw.decode(errors="replace"))
                log.warning("chat_completion.failed", status_code=error.status_code, request_id=error.request_id)
                raise error

            log.debug("chat_completion.stream_started", request_id=response.headers.get("x-request-id"))
            decoder = StreamDecoder(response.headers, require_sentinel=self._require_sentinel)
            async with aclosing(decoder.decode(response.aiter_lines())) as results:
                async for result in results:
                    yield result


def _prompt_request(prompt: str, stop_sequences: Sequence[str], **params: Any) -> RequestSpec:
    if stop_sequences:
        params["stop"] = list(stop_sequences)
    return RequestSpec.from_prompt(prompt, **params)


def _transport_error(response: httpx.Response, request_body: str, response_body: str) -> TransportError:
    return TransportError(
        f"Error calling chat completions: HTTP {response.status_code}. Request body: {request_body}",
        status_code=response.status_code,
        request_body=request_body,
        response_body=response_body,
        request_id=response.headers.get("x-request-id"),
    )
