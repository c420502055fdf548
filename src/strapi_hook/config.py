"""Application configuration management.

Values are resolved once at startup with the precedence
command-line flag > ``STRAPI_HOOK_*`` environment variable > TOML config
file > built-in default, and are read-only afterwards.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import CONFIG_FILE_NAME, DEFAULT_PATH, DEFAULT_PORT, DEFAULT_TARGET, ENV_PREFIX
from .logging import DEFAULT_LOG_LEVEL


class ConfigError(RuntimeError):
    """Raised when application configuration is invalid."""


class AppConfig(BaseModel):
    """Validated gateway configuration."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    host: str = Field(default="0.0.0.0", description="Host interface to bind the HTTP server")
    port: int = Field(
        default=DEFAULT_PORT, ge=1, le=65535, description="Port number of the HTTP server"
    )
    target: str = Field(default=DEFAULT_TARGET, description="Upstream address accepted calls are relayed to")
    path: str = Field(default=DEFAULT_PATH, description="The single path the gateway serves")
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Root log level")
    forward_timeout_seconds: float = Field(
        default=10.0, gt=0, description="Timeout (seconds) applied to each upstream call"
    )
    metrics_port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Port for the Prometheus exporter; unset disables it",
    )

    @field_validator("log_level")
    @classmethod
    def _normalise_log_level(cls, value: str) -> str:
        from logging import getLevelName

        candidate = value.upper()
        resolved = getLevelName(candidate)
        if isinstance(resolved, int):
            return candidate
        raise ValueError(f"Unsupported log level '{value}'")

    @field_validator("target")
    @classmethod
    def _validate_target(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid target URL '{value}'") from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise ValueError(f"Target must be an absolute http(s) URL, got '{value}'")
        return value

    @field_validator("path")
    @classmethod
    def _validate_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError(f"Path must start with '/', got '{value}'")
        return value

    @classmethod
    def from_sources(
        cls,
        *,
        config_file: str | Path | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> AppConfig:
        """Merge defaults, the config file, the environment and explicit overrides."""
        load_dotenv()
        raw: dict[str, Any] = {}
        path = resolve_config_file(config_file)
        if path is not None:
            raw.update(_drop_unset(read_config_file(path)))
        raw.update(_drop_unset(cls._env_values()))
        raw.update(_drop_unset(overrides or {}))
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid application configuration: {exc}") from exc

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from the environment and the default config file."""
        return cls.from_sources()

    @classmethod
    def _env_values(cls) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw.strip()
        return values


def _drop_unset(values: Mapping[str, Any]) -> dict[str, Any]:
    """Discard values that mean "not provided" (None, empty strings, port 0)."""
    kept: dict[str, Any] = {}
    for key, value in values.items():
        name = key.replace("-", "_")
        if value is None or value == "":
            continue
        if name in {"port", "metrics_port"} and str(value) == "0":
            continue
        kept[name] = value
    return kept


def default_config_file() -> Path | None:
    try:
        candidate = Path.home() / CONFIG_FILE_NAME
    except RuntimeError:
        return None
    return candidate if candidate.is_file() else None


def resolve_config_file(config_file: str | Path | None) -> Path | None:
    """Return the config file in effect, or None when there is none.

    An explicitly requested file must exist; the default file in the home
    directory is optional.
    """
    if config_file is None:
        return default_config_file()
    path = Path(config_file).expanduser()
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")
    return path


def read_config_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc


def load_config(
    config_file: str | Path | None = None, overrides: Mapping[str, Any] | None = None
) -> AppConfig:
    """Convenience helper to load configuration with error propagation."""
    return AppConfig.from_sources(config_file=config_file, overrides=overrides)
