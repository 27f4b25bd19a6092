"""Model catalog and the idempotent "install if absent" download routine.

The same routine runs in two places: on the host, where commands are executed
inside the managed container, and inside the container itself, where they run
as local subprocesses. Only the ``runner`` differs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
import subprocess

from aicli.utils.docker.errors import ModelPullFailed
from aicli.utils.docker.logging_utils import log_multiline
from aicli.utils.log_utils import logger


Runner = Callable[[Sequence[str]], tuple[int, str]]

OLLAMA = "ollama"


@dataclass(frozen=True)
class ModelSpec:
    identifier: str
    description: str


CODER = ModelSpec("qwen2.5-coder:32b", "Best local coding model, 92 languages (~19GB)")
THINKER = ModelSpec("qwen3:32b", "Dual mode thinking/non-thinking (~19GB)")
REASONER = ModelSpec("deepseek-r1:32b", "Best local reasoning, chain-of-thought (~20GB)")
UNCENSORED = ModelSpec("dolphin3:8b", "Uncensored for unrestricted tasks (~5GB)")


class DownloadMode(str, Enum):
    MINIMAL = "minimal"
    DEFAULT = "default"
    ALL = "all"


MODEL_SETS: dict[DownloadMode, tuple[ModelSpec, ...]] = {
    DownloadMode.MINIMAL: (CODER,),
    DownloadMode.DEFAULT: (CODER, REASONER),
    DownloadMode.ALL: (CODER, THINKER, REASONER, UNCENSORED),
}

MODE_LABELS: dict[DownloadMode, str] = {
    DownloadMode.MINIMAL: "Minimal Mode: Coding model only",
    DownloadMode.DEFAULT: "Default Mode: Coder + Reasoning",
    DownloadMode.ALL: "Full Mode: All 4 models",
}


@dataclass
class DownloadReport:
    downloaded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def local_runner(argv: Sequence[str]) -> tuple[int, str]:
    """Run ``argv`` on this machine and return (exit_code, combined output)."""
    try:
        result = subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            errors="replace",
        )
    except OSError as e:
        return 127, str(e)
    return result.returncode, (result.stdout or "") + (result.stderr or "")


def parse_model_list(output: str) -> list[str]:
    """Return model names from ``ollama list`` output (header row skipped)."""
    names: list[str] = []
    for line in output.splitlines()[1:]:
        fields = line.split()
        if fields:
            names.append(fields[0])
    return names


def is_installed(identifier: str, installed: Iterable[str]) -> bool:
    """Exact or prefix match, as ``ollama list | grep ^<id>`` would do."""
    return any(name == identifier or name.startswith(identifier) for name in installed)


class ModelDownloader:
    """Pull each requested model at most once, skipping installed ones."""

    def __init__(self, runner: Runner = local_runner, *, log_prefix: str | None = None) -> None:
        self.runner = runner
        self.log_prefix = log_prefix

    def installed_models(self) -> list[str]:
        code, out = self.runner([OLLAMA, "list"])
        if code != 0:
            log_multiline(out, self.log_prefix, level="warning")
            raise ModelPullFailed("Could not list installed models. Is the model server running?")
        return parse_model_list(out)

    def pull(self, spec: ModelSpec) -> None:
        logger.info(f"Downloading {spec.identifier}...")
        logger.info(f"   {spec.description}")
        code, out = self.runner([OLLAMA, "pull", spec.identifier])
        if code != 0:
            log_multiline(out, self.log_prefix, level="warning")
            raise ModelPullFailed(f"Failed to pull '{spec.identifier}' (exit code {code}).")
        logger.info(f"[green]{spec.identifier} - downloaded[/green]")

    def download(self, specs: Iterable[ModelSpec]) -> DownloadReport:
        report = DownloadReport()
        installed = set(self.installed_models())
        seen: set[str] = set()
        for spec in specs:
            if spec.identifier in seen:
                continue
            seen.add(spec.identifier)
            if is_installed(spec.identifier, installed):
                logger.info(f"[green]{spec.identifier} - already installed[/green]")
                report.skipped.append(spec.identifier)
                continue
            self.pull(spec)
            installed.add(spec.identifier)
            report.downloaded.append(spec.identifier)
        return report

    def download_mode(self, mode: DownloadMode) -> DownloadReport:
        logger.info(MODE_LABELS[mode])
        report = self.download(MODEL_SETS[mode])
        logger.info(
            f"Download complete: {len(report.downloaded)} downloaded, "
            f"{len(report.skipped)} already installed."
        )
        return report
