"""Tests for the centralised configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from aicli.config.settings import (
    DEFAULT_CONTAINER,
    DEFAULT_IMAGE,
    DEFAULT_READY_TIMEOUT,
    DEFAULT_SERVER_ATTEMPTS,
    DEFAULT_SERVER_INTERVAL,
    DEFAULT_VOLUME,
    MODEL_SERVER_ENV,
    get_settings,
)


_KEYS = (
    "AICLI_IMAGE",
    "AICLI_CONTAINER",
    "AICLI_VOLUME",
    "AICLI_BUILD_CONTEXT",
    "AICLI_SHELL",
    "AICLI_READY_TIMEOUT",
    "AICLI_SERVER_URL",
    "AICLI_SERVER_ATTEMPTS",
    "AICLI_SERVER_INTERVAL",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so values injected by load_dotenv are undone after each test.
    for key in _KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def _write_env(path: Path, content: str) -> None:
    lines = [line.strip() for line in content.strip().splitlines()]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def test_defaults_without_env_file(tmp_path: Path) -> None:
    settings = get_settings(env_file=tmp_path / "missing.env", reload=True)

    assert settings.names.image == DEFAULT_IMAGE
    assert settings.names.container == DEFAULT_CONTAINER
    assert settings.names.volume == DEFAULT_VOLUME
    assert settings.shell == "zsh"
    assert settings.ready_timeout == DEFAULT_READY_TIMEOUT
    assert settings.model_server.url == "http://127.0.0.1:11434"
    assert settings.model_server.attempts == DEFAULT_SERVER_ATTEMPTS
    assert settings.model_server.interval == DEFAULT_SERVER_INTERVAL


def test_env_file_values_are_loaded(tmp_path: Path) -> None:
    """Ensure values from a dedicated env file are parsed into the snapshot."""
    context = tmp_path / "ctx"
    context.mkdir()
    env_file = tmp_path / "test.env"
    _write_env(
        env_file,
        f"""
        AICLI_IMAGE=my-ai:dev
        AICLI_CONTAINER=my-ai
        AICLI_VOLUME=my-models
        AICLI_BUILD_CONTEXT={context}
        AICLI_SHELL=bash
        AICLI_READY_TIMEOUT=15
        AICLI_SERVER_URL=http://localhost:9999/
        AICLI_SERVER_ATTEMPTS=5
        AICLI_SERVER_INTERVAL=0.25
        """,
    )

    settings = get_settings(env_file=env_file, reload=True)

    assert settings.env_file == env_file.resolve()
    assert settings.names.image == "my-ai:dev"
    assert settings.names.container == "my-ai"
    assert settings.names.volume == "my-models"
    assert settings.build_context == context.resolve()
    assert settings.shell == "bash"
    assert settings.ready_timeout == 15.0
    assert settings.model_server.url == "http://localhost:9999"
    assert settings.model_server.attempts == 5
    assert settings.model_server.interval == 0.25


def test_environment_variables_override_env_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Existing environment variables should take precedence over .env contents."""
    env_file = tmp_path / "override.env"
    _write_env(
        env_file,
        """
        AICLI_CONTAINER=from-file
        AICLI_SERVER_ATTEMPTS=7
        """,
    )
    monkeypatch.setenv("AICLI_CONTAINER", "from-env")
    monkeypatch.setenv("AICLI_SERVER_ATTEMPTS", "9")

    settings = get_settings(env_file=env_file, reload=True)

    assert settings.names.container == "from-env"
    assert settings.model_server.attempts == 9


@pytest.mark.parametrize("value", ["abc", "0", "-3"])
def test_invalid_numbers_fall_back_to_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("AICLI_READY_TIMEOUT", value)
    monkeypatch.setenv("AICLI_SERVER_ATTEMPTS", value)
    monkeypatch.setenv("AICLI_SERVER_INTERVAL", value)

    settings = get_settings(env_file=tmp_path / "none.env", reload=True)

    assert settings.ready_timeout == DEFAULT_READY_TIMEOUT
    assert settings.model_server.attempts == DEFAULT_SERVER_ATTEMPTS
    assert settings.model_server.interval == DEFAULT_SERVER_INTERVAL


def test_reload_picks_up_changes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Calling get_settings with reload=True should refresh cached values."""
    env_file = tmp_path / "reload.env"
    monkeypatch.setenv("AICLI_VOLUME", "first")
    first = get_settings(env_file=env_file, reload=True)

    monkeypatch.setenv("AICLI_VOLUME", "second")
    cached = get_settings(env_file=env_file)
    refreshed = get_settings(env_file=env_file, reload=True)

    assert first.names.volume == "first"
    assert cached.names.volume == "first"
    assert refreshed.names.volume == "second"


def test_model_server_environment_points_at_volume_mount() -> None:
    assert MODEL_SERVER_ENV["OLLAMA_MODELS"] == "/ollama-models"
    assert MODEL_SERVER_ENV["OLLAMA_HOST"] == "127.0.0.1:11434"
    assert MODEL_SERVER_ENV["NVIDIA_VISIBLE_DEVICES"] == "all"
