"""Client configuration powered by pydantic-settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_USER_AGENT = "chatclient/0.1.0"


class Settings(BaseSettings):
    """Runtime settings loaded from environment or .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Optional here: a missing key only fails the first API call.
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("openai_api_key", "OPENAI_API_KEY", "OPENAI_KEY"),
    )
    openai_organization: str | None = Field(default=None, alias="OPENAI_ORGANIZATION")
    base_url: str = Field(default=DEFAULT_BASE_URL, alias="OPENAI_BASE_URL")
    model: str = Field(default=DEFAULT_MODEL, alias="OPENAI_MODEL")
    # No timeout is enforced by the decoder itself; this one goes to httpx.
    timeout_seconds: float = Field(default=120.0, alias="OPENAI_TIMEOUT_SECONDS")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="CHATCLIENT_USER_AGENT")


@lru_cache(1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
