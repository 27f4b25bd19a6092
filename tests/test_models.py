from __future__ import annotations

from collections.abc import Sequence

import pytest

from aicli.models import (
    CODER,
    MODEL_SETS,
    REASONER,
    DownloadMode,
    ModelDownloader,
    is_installed,
    parse_model_list,
)
from aicli.utils.docker import ModelPullFailed


LIST_HEADER = "NAME                ID              SIZE      MODIFIED"


class FakeOllama:
    """Runner that emulates ``ollama list`` / ``ollama pull``."""

    def __init__(self, installed: Sequence[str] = (), fail_pull: str | None = None) -> None:
        self.installed = list(installed)
        self.fail_pull = fail_pull
        self.calls: list[list[str]] = []

    def __call__(self, argv: Sequence[str]) -> tuple[int, str]:
        argv = list(argv)
        self.calls.append(argv)
        if argv[1] == "list":
            rows = [LIST_HEADER] + [f"{m}    abc    19 GB    now" for m in self.installed]
            return 0, "\n".join(rows)
        if argv[1] == "pull":
            if argv[2] == self.fail_pull:
                return 1, "pull model manifest: file does not exist"
            self.installed.append(argv[2])
            return 0, "success"
        return 127, ""

    @property
    def pulls(self) -> list[str]:
        return [c[2] for c in self.calls if c[1] == "pull"]


def test_model_sets() -> None:
    assert [m.identifier for m in MODEL_SETS[DownloadMode.MINIMAL]] == ["qwen2.5-coder:32b"]
    assert [m.identifier for m in MODEL_SETS[DownloadMode.DEFAULT]] == [
        "qwen2.5-coder:32b",
        "deepseek-r1:32b",
    ]
    assert [m.identifier for m in MODEL_SETS[DownloadMode.ALL]] == [
        "qwen2.5-coder:32b",
        "qwen3:32b",
        "deepseek-r1:32b",
        "dolphin3:8b",
    ]


def test_parse_model_list_skips_header() -> None:
    out = f"{LIST_HEADER}\nqwen2.5-coder:32b  abc  19 GB  now\n\ndolphin3:8b  def  4.9 GB  now\n"

    assert parse_model_list(out) == ["qwen2.5-coder:32b", "dolphin3:8b"]
    assert parse_model_list(LIST_HEADER) == []


def test_is_installed_matches_prefix() -> None:
    assert is_installed("qwen3:32b", ["qwen3:32b"])
    assert is_installed("dolphin3", ["dolphin3:8b"])
    assert not is_installed("qwen3:32b", ["qwen2.5-coder:32b"])


def test_download_pulls_missing_models_only() -> None:
    runner = FakeOllama(installed=["qwen2.5-coder:32b"])

    report = ModelDownloader(runner).download_mode(DownloadMode.DEFAULT)

    assert runner.pulls == ["deepseek-r1:32b"]
    assert report.downloaded == ["deepseek-r1:32b"]
    assert report.skipped == ["qwen2.5-coder:32b"]


def test_download_is_idempotent() -> None:
    runner = FakeOllama()
    downloader = ModelDownloader(runner)

    first = downloader.download_mode(DownloadMode.ALL)
    second = downloader.download_mode(DownloadMode.ALL)

    assert len(first.downloaded) == 4
    assert second.downloaded == []
    assert len(second.skipped) == 4
    assert len(runner.pulls) == 4


def test_duplicate_specs_are_pulled_once() -> None:
    runner = FakeOllama()

    report = ModelDownloader(runner).download([CODER, REASONER, CODER])

    assert runner.pulls == ["qwen2.5-coder:32b", "deepseek-r1:32b"]
    assert report.skipped == []


def test_failed_pull_raises() -> None:
    runner = FakeOllama(fail_pull="deepseek-r1:32b")

    with pytest.raises(ModelPullFailed, match="deepseek-r1:32b"):
        ModelDownloader(runner).download_mode(DownloadMode.DEFAULT)

    assert "qwen2.5-coder:32b" in runner.installed


def test_list_failure_raises() -> None:
    def _down(argv: Sequence[str]) -> tuple[int, str]:
        return 1, "Error: could not connect to ollama app, is it running?"

    with pytest.raises(ModelPullFailed, match="model server"):
        ModelDownloader(_down).download_mode(DownloadMode.MINIMAL)
