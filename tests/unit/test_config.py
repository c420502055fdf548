"""Tests for application configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from strapi_hook.config import AppConfig, ConfigError, load_config


def _write_config(path: Path, body: str) -> Path:
    path.write_text(body, encoding="utf-8")
    return path


def test_defaults_without_any_input() -> None:
    config = load_config()

    assert config.port == 8080
    assert config.target == "http://localhost:10080/api"
    assert config.host == "0.0.0.0"
    assert config.path == "/strapi"
    assert config.log_level == "INFO"
    assert config.metrics_port is None


def test_port_and_target_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRAPI_HOOK_PORT", "10080")
    monkeypatch.setenv("STRAPI_HOOK_TARGET", "http://env-server:8080/api")
    monkeypatch.setenv("STRAPI_HOOK_LOG_LEVEL", "debug")
    monkeypatch.setenv("STRAPI_HOOK_FORWARD_TIMEOUT_SECONDS", "2.5")

    config = AppConfig.from_env()

    assert config.port == 10080
    assert config.target == "http://env-server:8080/api"
    assert config.log_level == "DEBUG"
    assert config.forward_timeout_seconds == 2.5


def test_empty_environment_values_are_ignored(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRAPI_HOOK_PORT", "")
    monkeypatch.setenv("STRAPI_HOOK_TARGET", "")

    config = load_config()

    assert config.port == 8080
    assert config.target == "http://localhost:10080/api"


def test_explicit_config_file(tmp_path: Path) -> None:
    path = _write_config(
        tmp_path / "gateway.toml",
        'port = 9100\ntarget = "http://file-server:8080/api"\nlog-level = "warning"\n',
    )

    config = load_config(config_file=path)

    assert config.port == 9100
    assert config.target == "http://file-server:8080/api"
    assert config.log_level == "WARNING"


def test_default_config_file_in_home_directory(tmp_path: Path) -> None:
    _write_config(tmp_path / ".strapi-hook.toml", "port = 9200\n")

    assert load_config().port == 9200


def test_precedence_flag_over_env_over_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    path = _write_config(
        tmp_path / "gateway.toml", 'port = 9100\ntarget = "http://file-server/api"\n'
    )
    monkeypatch.setenv("STRAPI_HOOK_PORT", "9300")
    monkeypatch.setenv("STRAPI_HOOK_TARGET", "http://env-server/api")

    from_env = load_config(config_file=path)
    from_flag = load_config(config_file=path, overrides={"port": 500, "target": None})

    assert from_env.port == 9300
    assert from_env.target == "http://env-server/api"
    assert from_flag.port == 500
    assert from_flag.target == "http://env-server/api"


def test_zero_port_counts_as_unset() -> None:
    config = load_config(overrides={"port": 0})

    assert config.port == 8080


def test_invalid_port_raises_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STRAPI_HOOK_PORT", "70000")

    with pytest.raises(ConfigError):
        load_config()


def test_invalid_target_raises_config_error() -> None:
    with pytest.raises(ConfigError):
        load_config(overrides={"target": "not a url"})


def test_missing_explicit_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(config_file=tmp_path / "missing.toml")


def test_malformed_config_file(tmp_path: Path) -> None:
    path = _write_config(tmp_path / "broken.toml", "port = = 1\n")

    with pytest.raises(ConfigError):
        load_config(config_file=path)


def test_path_must_be_absolute() -> None:
    with pytest.raises(ValidationError):
        AppConfig(path="strapi")


def test_config_is_read_only() -> None:
    config = AppConfig()

    with pytest.raises(ValidationError):
        config.port = 9000  # type: ignore[misc]
