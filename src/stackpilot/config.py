"""Configuration management for stackpilot."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stackpilot.errors import ConfigurationError

DEFAULT_MODEL = "gpt-4"
DEFAULT_TEMPERATURE = 0.0
DEFAULT_API_BASE = "https://api.openai.com/v1"


def resolve_temperature(raw: object, default: float = DEFAULT_TEMPERATURE) -> float:
    """Resolve a sampling temperature, falling back only when the value is unset.

    An unset or blank value resolves to ``default``. Anything else must parse as
    a finite number; a non-numeric value is a configuration error rather than NaN.
    """

    if raw is None:
        return default
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return default
    try:
        value = float(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid temperature: {raw!r}") from exc
    if not math.isfinite(value):
        raise ConfigurationError(f"invalid temperature: {raw!r}")
    return value


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="STACKPILOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Model backend
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("STACKPILOT_API_KEY", "OPENAI_API_KEY"),
        description="API key for the completion endpoint",
    )
    api_base: str = Field(default=DEFAULT_API_BASE, description="OpenAI-compatible API base URL")
    model: str = Field(
        default=DEFAULT_MODEL,
        validation_alias=AliasChoices("STACKPILOT_MODEL", "OPENAI_MODEL"),
        description="Chat model identifier",
    )
    temperature: float = Field(
        default=DEFAULT_TEMPERATURE,
        validation_alias=AliasChoices("STACKPILOT_TEMPERATURE", "OPENAI_TEMPERATURE"),
        description="Sampling temperature",
    )
    timeout_seconds: float | None = Field(default=300.0, description="HTTP timeout for model requests")

    # Stack
    auto_deploy: bool = Field(default=True, description="Deploy every generated program")
    project_name: str = Field(default="stackpilot", description="Pulumi project name")
    stack_name: str = Field(default="dev", description="Pulumi stack name")
    region: str = Field(default="us-west-2", description="Target AWS region")
    home: Path = Field(default=Path.home() / ".stackpilot", description="Directory holding stack workspaces")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("temperature", mode="before")
    @classmethod
    def _resolve_temperature(cls, value: Any) -> float:
        return resolve_temperature(value)

    def resolve_home(self) -> Path:
        return self.home.expanduser().resolve()

    @property
    def resolved_api_key(self) -> str | None:
        if self.api_key and self.api_key.strip():
            return self.api_key.strip()
        return None


def get_settings(**overrides: Any) -> Settings:
    """Get application settings, with keyword overrides taking precedence over the environment."""
    return Settings(**{key: value for key, value in overrides.items() if value is not None})
