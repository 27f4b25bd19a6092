"""In-container entrypoint.

Starts the model server in the background, waits (bounded) for it to answer,
prints a short status report and the welcome banner, then runs the requested
command (an interactive shell by default). The background server is
terminated on exit, including on SIGTERM/SIGINT.
"""

from __future__ import annotations

from collections.abc import Sequence
import os
from pathlib import Path
import signal
import subprocess
from types import FrameType

import requests
from rich.console import Console
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from aicli.config import (
    MODEL_SERVER_ENV,
    MODELS_MOUNT,
    READY_MARKER,
    WORKSPACE_MOUNT,
    AicliSettings,
    get_settings,
)
from aicli.gpu import discover_gpus, report_gpus
from aicli.models import OLLAMA, Runner, local_runner
from aicli.utils.docker.operations import format_bytes
from aicli.utils.log_utils import logger


console = Console(highlight=False)

MAX_LISTED_MODELS = 10

BANNER_TITLE = "AI CLI Docker Container"

CLI_LINES = (
    ("claude", "Claude Code CLI (Anthropic)"),
    ("qwen", "Qwen Code CLI (Alibaba)"),
    ("gemini", "Gemini CLI (Google)"),
    ("ollama", "Local LLM server"),
)

MODEL_COMMAND_LINES = (
    ("aicli models", "Download models"),
    ("aicli models --all", "Download all 4 models"),
    ("ollama run <model>", "Run a model"),
    ("ollama list", "List all models"),
)


class ShutdownRequested(SystemExit):
    """Raised from the signal handler so ``finally`` blocks run."""


def _raise_shutdown(signum: int, frame: FrameType | None) -> None:
    logger.debug(f"Received signal {signum}")
    raise ShutdownRequested(0)


def server_environment(base: dict[str, str] | None = None) -> dict[str, str]:
    """Return the process environment with model-server defaults filled in."""
    env = dict(os.environ if base is None else base)
    for key, value in MODEL_SERVER_ENV.items():
        env.setdefault(key, value)
    return env


def _check_server(url: str, timeout: float = 2.0) -> None:
    response = requests.get(f"{url}/api/tags", timeout=timeout)
    response.raise_for_status()


def server_is_up(url: str, timeout: float = 2.0) -> bool:
    try:
        _check_server(url, timeout)
    except requests.RequestException:
        return False
    return True


def wait_for_server(url: str, *, attempts: int, interval: float) -> bool:
    """Poll the model server until it answers. False after ``attempts`` tries."""
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(requests.RequestException),
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                _check_server(url)
    except requests.RequestException:
        return False
    return True


def start_server() -> subprocess.Popen[bytes]:
    """Launch ``ollama serve`` in the background with output discarded."""
    return subprocess.Popen(
        [OLLAMA, "serve"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        env=server_environment(),
    )


def stop_server(process: subprocess.Popen[bytes] | None, timeout: float = 10.0) -> None:
    if process is None or process.poll() is not None:
        return
    logger.info("Shutting down Ollama...")
    process.terminate()
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def ensure_server(settings: AicliSettings) -> subprocess.Popen[bytes] | None:
    """Start the model server unless one already answers. Never fatal."""
    server = settings.model_server
    if server_is_up(server.url):
        return None
    logger.info("Starting Ollama server...")
    process = start_server()
    if wait_for_server(server.url, attempts=server.attempts, interval=server.interval):
        logger.info(f"[green]Ollama running at {server.url}[/green]")
    else:
        logger.warning("[yellow]Ollama may not have started properly[/yellow]")
    return process


def report_models(runner: Runner = local_runner) -> None:
    code, out = runner([OLLAMA, "list"])
    rows = [line.split() for line in out.splitlines()[1:] if line.strip()] if code == 0 else []
    if not rows:
        logger.warning("[yellow]No models installed[/yellow]")
        logger.info("   To download recommended models, run: aicli models")
        return
    logger.info(f"[green]{len(rows)} model(s) installed:[/green]")
    for fields in rows[:MAX_LISTED_MODELS]:
        size = " ".join(fields[2:4]) if len(fields) >= 4 else "?"
        logger.info(f"   - {fields[0]} ({size})")
    if len(rows) > MAX_LISTED_MODELS:
        logger.info(f"   ... and {len(rows) - MAX_LISTED_MODELS} more")


def directory_size(path: Path) -> int:
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).lstat().st_size
            except OSError:
                continue
    return total


def report_mounts(workspace: Path = Path(WORKSPACE_MOUNT), models: Path = Path(MODELS_MOUNT)) -> None:
    entries = list(workspace.iterdir()) if workspace.is_dir() else []
    if entries:
        logger.info(f"[green]Workspace mounted at {workspace}[/green] ({len(entries)} items)")
    else:
        logger.warning(
            f"[yellow]Workspace is empty or not mounted[/yellow] (mount your code at {workspace})"
        )
    if models.is_dir():
        size = directory_size(models)
        logger.info(
            f"Model storage: {models} ({format_bytes(size) if size else 'empty'}); "
            "models persist across container restarts"
        )


def print_welcome() -> None:
    console.print()
    console.rule(f"[cyan]{BANNER_TITLE}[/cyan]")
    console.print("[cyan]Available AI CLIs:[/cyan]")
    for name, description in CLI_LINES:
        console.print(f"   {name:<8} - {description}")
    console.print()
    console.print("[cyan]Ollama Commands:[/cyan]")
    for command, description in MODEL_COMMAND_LINES:
        console.print(f"   {command:<26} - {description}")
    console.print()
    console.print(f"[cyan]Quick start:[/cyan] cd {WORKSPACE_MOUNT} and run claude, qwen or gemini")
    console.rule(style="cyan")
    console.print()


def run(command: Sequence[str] | None = None, settings: AicliSettings | None = None) -> int:
    """Container main: start the server, report, run ``command``, clean up."""
    config = settings or get_settings()
    argv = list(command) if command else [config.shell]

    previous = {
        sig: signal.signal(sig, _raise_shutdown) for sig in (signal.SIGTERM, signal.SIGINT)
    }
    process: subprocess.Popen[bytes] | None = None
    try:
        report_gpus(discover_gpus())
        process = ensure_server(config)
        report_models()
        report_mounts()
        print_welcome()
        logger.info(READY_MARKER)

        cwd = WORKSPACE_MOUNT if Path(WORKSPACE_MOUNT).is_dir() else None
        try:
            return subprocess.call(argv, cwd=cwd)
        except FileNotFoundError:
            logger.error(f"Command not found: {argv[0]}")
            return 127
    except ShutdownRequested:
        return 0
    finally:
        stop_server(process)
        for sig, handler in previous.items():
            signal.signal(sig, handler)


__all__ = [
    "ensure_server",
    "print_welcome",
    "run",
    "server_is_up",
    "stop_server",
    "wait_for_server",
]
