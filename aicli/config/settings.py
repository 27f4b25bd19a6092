"""Centralised environment configuration for aicli.

This module ensures `.env` loading happens in one place and exposes a
typed snapshot of resource names, build context, and model-server polling
knobs. Downstream modules call `get_settings()` instead of touching
`os.environ` directly, making it easier to validate values and override
behaviour in tests.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import os
from pathlib import Path

from dotenv import load_dotenv


WORKSPACE_MOUNT = "/workspace"
MODELS_MOUNT = "/ollama-models"

# Printed by the in-container entrypoint once startup has finished.
READY_MARKER = "AI CLI container ready"

# Forwarded verbatim into the managed container.
MODEL_SERVER_ENV: dict[str, str] = {
    "NVIDIA_VISIBLE_DEVICES": "all",
    "NVIDIA_DRIVER_CAPABILITIES": "compute,utility",
    "OLLAMA_FLASH_ATTENTION": "1",
    "OLLAMA_NUM_GPU": "999",
    "OLLAMA_HOST": "127.0.0.1:11434",
    "OLLAMA_MODELS": MODELS_MOUNT,
}

DEFAULT_IMAGE = "ai-cli-docker:latest"
DEFAULT_CONTAINER = "ai-cli"
DEFAULT_VOLUME = "ollama-models"
DEFAULT_SHELL = "zsh"
DEFAULT_READY_TIMEOUT = 60.0
DEFAULT_SERVER_URL = "http://127.0.0.1:11434"
DEFAULT_SERVER_ATTEMPTS = 30
DEFAULT_SERVER_INTERVAL = 1.0


def _coerce_int(value: str | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _coerce_float(value: str | None) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class ResourceNames:
    image: str
    container: str
    volume: str


@dataclass(frozen=True)
class ModelServerSettings:
    url: str
    attempts: int
    interval: float


@dataclass(frozen=True)
class AicliSettings:
    """Top-level snapshot of configuration values."""

    env_file: Path
    names: ResourceNames
    build_context: Path
    shell: str
    ready_timeout: float
    model_server: ModelServerSettings


def _resolve_env_path(env_file: os.PathLike[str] | str | None) -> Path:
    if env_file is None:
        return (Path.cwd() / ".env").resolve()
    return Path(env_file).resolve()


@lru_cache(maxsize=4)
def _load_settings(env_path: Path) -> AicliSettings:
    # Existing environment variables take precedence over `.env` defaults.
    load_dotenv(dotenv_path=env_path, override=False)

    names = ResourceNames(
        image=os.getenv("AICLI_IMAGE") or DEFAULT_IMAGE,
        container=os.getenv("AICLI_CONTAINER") or DEFAULT_CONTAINER,
        volume=os.getenv("AICLI_VOLUME") or DEFAULT_VOLUME,
    )

    build_context = Path(os.getenv("AICLI_BUILD_CONTEXT") or Path.cwd()).expanduser().resolve()

    ready_timeout = _coerce_float(os.getenv("AICLI_READY_TIMEOUT"))
    attempts = _coerce_int(os.getenv("AICLI_SERVER_ATTEMPTS"))
    interval = _coerce_float(os.getenv("AICLI_SERVER_INTERVAL"))

    model_server = ModelServerSettings(
        url=(os.getenv("AICLI_SERVER_URL") or DEFAULT_SERVER_URL).rstrip("/"),
        attempts=attempts if attempts and attempts > 0 else DEFAULT_SERVER_ATTEMPTS,
        interval=interval if interval and interval > 0 else DEFAULT_SERVER_INTERVAL,
    )

    return AicliSettings(
        env_file=env_path,
        names=names,
        build_context=build_context,
        shell=os.getenv("AICLI_SHELL") or DEFAULT_SHELL,
        ready_timeout=ready_timeout if ready_timeout and ready_timeout > 0 else DEFAULT_READY_TIMEOUT,
        model_server=model_server,
    )


def get_settings(
    env_file: os.PathLike[str] | str | None = None,
    *,
    reload: bool = False,
) -> AicliSettings:
    """Return the cached settings snapshot.

    Args:
        env_file: Optional explicit path to a `.env` file. When omitted the
            `.env` file in the current working directory is used.
        reload: When True the cached snapshot is cleared before loading.
    """
    env_path = _resolve_env_path(env_file)
    if reload:
        _load_settings.cache_clear()
    return _load_settings(env_path)
