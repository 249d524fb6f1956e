"""API key lookup: explicit value, then environment, then a ``.openai`` dotfile."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import structlog

from .errors import AuthenticationMissingError
from .settings import Settings, get_settings

logger = structlog.get_logger(__name__)

DOTFILE_NAME = ".openai"
KEY_NAMES = ("OPENAI_API_KEY", "OPENAI_KEY", "OPENAI_SECRET_KEY")
ORGANIZATION_NAME = "OPENAI_ORGANIZATION"


@dataclass(frozen=True)
class Credentials:
    api_key: str
    organization: str | None = None


def default_search_paths() -> list[Path]:
    return [Path.cwd() / DOTFILE_NAME, Path.home() / DOTFILE_NAME]


class KeyProvider:
    """Resolves credentials lazily, at the moment a call needs them."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        organization: str | None = None,
        settings: Settings | None = None,
        search_paths: Sequence[Path] | None = None,
    ) -> None:
        self._api_key = api_key
        self._organization = organization
        self._settings = settings
        self._search_paths = search_paths

    def get(self) -> Credentials:
        settings = self._settings or get_settings()
        organization = self._organization or settings.openai_organization

        if self._api_key:
            return Credentials(api_key=self._api_key, organization=organization)

        if settings.openai_api_key:
            return Credentials(api_key=settings.openai_api_key, organization=organization)

        paths = self._search_paths if self._search_paths is not None else default_search_paths()
        for path in paths:
            parsed = load_dotfile(path)
            if parsed is None:
                continue
            logger.debug("auth.dotfile_used", path=str(path))
            return Credentials(
                api_key=parsed.api_key,
                organization=organization or parsed.organization,
            )

        raise AuthenticationMissingError(
            "No API key found. Pass api_key=..., set OPENAI_API_KEY, "
            f"or create a {DOTFILE_NAME} file in the working or home directory."
        )


def load_dotfile(path: Path) -> Credentials | None:
    """Parse a ``.openai`` file. Returns ``None`` when it holds no key.

    The file is either ``NAME=value`` lines or a single bare line with the key.
    """

    if not path.is_file():
        return None

    lines = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    lines = [line for line in lines if line and not line.startswith("#")]
    if not lines:
        return None

    if len(lines) == 1 and "=" not in lines[0]:
        return Credentials(api_key=lines[0])

    values: dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition("=")
        if sep:
            values[name.strip().upper()] = value.strip()

    api_key = next((values[name] for name in KEY_NAMES if values.get(name)), None)
    if api_key is None:
        return None
    return Credentials(api_key=api_key, organization=values.get(ORGANIZATION_NAME) or None)
