"""Command line entry point: send one prompt and print the reply."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid

from .client import ChatCompletionsClient
from .errors import ChatClientError
from .logging import bind_trace, configure_logging
from .models import ChatMessage, RequestSpec, Role


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send a prompt to the chat completions API.")
    parser.add_argument("prompt")
    parser.add_argument("--model", default=None, help="Defaults to OPENAI_MODEL.")
    parser.add_argument("--system", default=None, help="Optional system message.")
    parser.add_argument("--max-tokens", type=int, default=None)
    parser.add_argument("--temperature", type=float, default=None)
    parser.add_argument("--top-p", type=float, default=None)
    parser.add_argument("--stop", action="append", default=None, help="Repeatable, at most 4.")
    parser.add_argument("--stream", action="store_true", help="Print tokens as they arrive.")
    parser.add_argument("--json-logs", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(args=argv)


def build_request(args: argparse.Namespace) -> RequestSpec:
    messages = []
    if args.system:
        messages.append(ChatMessage(role=Role.SYSTEM, content=args.system))
    messages.append(ChatMessage(role=Role.USER, content=args.prompt))
    return RequestSpec(
        messages=messages,
        max_tokens=args.max_tokens,
        temperature=args.temperature,
        top_p=args.top_p,
        stop=args.stop,
    )


async def run(args: argparse.Namespace) -> None:
    request = build_request(args)
    async with ChatCompletionsClient(model=args.model) as client:
        if not args.stream:
            result = await client.create_chat_completion(request)
            print(result)
            return

        async for chunk in client.iter_chat_completion(request):
            if chunk.choices:
                sys.stdout.write(chunk.choices[0].text)
                sys.stdout.flush()
        sys.stdout.write("\n")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING, json_logs=args.json_logs)
    bind_trace(trace_id=uuid.uuid4().hex)
    try:
        asyncio.run(run(args))
    except ChatClientError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
