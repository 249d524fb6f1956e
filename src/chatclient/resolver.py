"""Merge a per-call request with caller-owned defaults."""

from __future__ import annotations

from typing import Any

from .models import GENERATION_FIELDS, DefaultRequestSpec, RequestSpec, ResolvedRequest

EMPTY_DEFAULTS = DefaultRequestSpec()


def resolve(
    explicit: RequestSpec,
    defaults: DefaultRequestSpec | None = None,
    *,
    model: str,
    stream: bool,
) -> ResolvedRequest:
    """Return a new request where each parameter is explicit-or-default.

    Fields are merged one by one, so overriding ``max_tokens`` still inherits
    ``temperature``, penalties, stop sequences and the rest from ``defaults``.
    Messages are never taken from ``defaults``. ``model`` and ``stream`` are
    forced to the given values whatever the caller put in ``explicit``.
    """

    defaults = defaults if defaults is not None else EMPTY_DEFAULTS
    merged: dict[str, Any] = {}
    for name in GENERATION_FIELDS:
        value = getattr(explicit, name)
        merged[name] = value if value is not None else getattr(defaults, name)

    return ResolvedRequest(
        messages=explicit.messages,
        model=model,
        stream=stream,
        **merged,
    )
