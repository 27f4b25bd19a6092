"""Shared fixtures built on the in-memory Docker fakes in ``fakes.py``."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from aicli.config.settings import AicliSettings
from aicli.utils.log_utils import logger
from fakes import FakeDockerClient, TerminalRecorder, make_settings


@pytest.fixture
def docker_client() -> FakeDockerClient:
    return FakeDockerClient()


@pytest.fixture
def build_context(tmp_path: Path) -> Path:
    context = tmp_path / "context"
    context.mkdir()
    (context / "Dockerfile").write_text("FROM ollama/ollama:latest\n", encoding="utf-8")
    return context


@pytest.fixture
def settings(build_context: Path) -> AicliSettings:
    return make_settings(build_context)


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    path = tmp_path / "proj"
    path.mkdir()
    return path.resolve()


@pytest.fixture
def terminal() -> TerminalRecorder:
    return TerminalRecorder()


@pytest.fixture
def log_messages() -> Iterator[list[str]]:
    """Collect plain log messages emitted through the shared loguru logger."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
