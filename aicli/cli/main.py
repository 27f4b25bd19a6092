from __future__ import annotations

from collections.abc import Callable, Sequence
from functools import wraps
from pathlib import Path
import sys
from typing import ParamSpec, TypeVar

import typer  # type: ignore[import]

from aicli import entrypoint
from aicli.config import get_settings
from aicli.lifecycle import LifecycleController
from aicli.models import DownloadMode, ModelDownloader
from aicli.prompts import NonInteractivePrompter, Prompter
from aicli.utils.docker import ContainerState, DockerError
from aicli.utils.log_utils import logger

from .menu import run_menu
from .status import render_status


app = typer.Typer(
    help="Build, start and manage the AI CLI container (Claude, Qwen, Gemini, Ollama).",
    invoke_without_command=True,
    no_args_is_help=False,
)


_P = ParamSpec("_P")
_T = TypeVar("_T")


def _prompter() -> Prompter:
    return Prompter() if sys.stdin.isatty() else NonInteractivePrompter()


def _controller() -> LifecycleController:
    return LifecycleController(prompter=_prompter())


def _reported(handler: Callable[_P, _T]) -> Callable[_P, _T]:
    """Turn lifecycle errors into a logged message and exit code 1."""

    @wraps(handler)
    def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> _T:
        try:
            return handler(*args, **kwargs)
        except DockerError as err:
            logger.error(str(err))
            raise typer.Exit(code=1) from err
        except KeyboardInterrupt as err:
            logger.info("Interrupted by user")
            raise typer.Exit(code=130) from err

    return wrapper


def _exit_on_failure(ok: bool) -> None:
    if not ok:
        raise typer.Exit(code=1)


@app.callback()
def main_callback(ctx: typer.Context) -> None:
    """Without a subcommand, open the interactive menu."""
    if ctx.invoked_subcommand is None:
        menu_command()


@app.command("menu")
@_reported
def menu_command() -> None:
    """Open the numbered interactive menu."""
    result = run_menu(_controller(), _prompter())
    if result != 0:
        raise typer.Exit(code=result)


@app.command("status")
@_reported
def status_command() -> None:
    """Show image, container, volume and GPU state."""
    render_status(_controller().status())


@app.command("build")
@_reported
def build_command(
    no_cache: bool = typer.Option(False, "--no-cache", help="Build without the layer cache."),
) -> None:
    """Build the container image from the build context."""
    _exit_on_failure(_controller().build(no_cache=no_cache))


@app.command("rebuild")
@_reported
def rebuild_command() -> None:
    """Rebuild the image from scratch (no cache)."""
    _exit_on_failure(_controller().rebuild())


@app.command("start")
@_reported
def start_command(
    path: Path | None = typer.Argument(
        None,
        help="Host folder to mount at /workspace (defaults to the current directory).",
    ),
) -> None:
    """Start the container, building the image first if needed."""
    _controller().start(path)


@app.command("stop")
@_reported
def stop_command() -> None:
    """Stop the container. The model volume is kept."""
    _controller().stop()


@app.command("delete")
@_reported
def delete_command() -> None:
    """Delete the stopped container. The model volume is kept."""
    controller = _controller()
    # Refusing a running container is a failure; nothing to delete is not.
    if not controller.delete_container():
        _exit_on_failure(controller.container_state() is ContainerState.ABSENT)


@app.command("attach")
@_reported
def attach_command() -> None:
    """Attach to the running container's main shell."""
    _controller().attach()


@app.command("shell")
@_reported
def shell_command() -> None:
    """Open an additional shell in the running container."""
    _controller().open_shell()


@app.command("logs")
@_reported
def logs_command(
    tail: int = typer.Option(100, "--tail", "-n", help="Number of lines to show.", show_default=True),
) -> None:
    """Show the container's recent output."""
    _controller().show_logs(tail=tail)


@app.command("download")
@_reported
def download_command(
    mode: DownloadMode = typer.Option(
        DownloadMode.DEFAULT,
        "--mode",
        help="Model set: minimal (coder), default (coder + reasoning) or all.",
        case_sensitive=False,
        show_default=True,
    ),
) -> None:
    """Download models into the volume through the running container."""
    _controller().download_models(mode)


@app.command("volume")
@_reported
def volume_command() -> None:
    """Report on the model volume and optionally delete it (double confirmation)."""
    _controller().manage_volume()


# In-container commands -------------------------------------------------------


@app.command(
    "entrypoint",
    context_settings={
        "allow_extra_args": True,
        "ignore_unknown_options": True,
        "help_option_names": [],
    },
)
def entrypoint_command(
    command: list[str] | None = typer.Argument(None, help="Command to run (default: shell)."),
) -> None:
    """Container entrypoint: start Ollama, print status, run COMMAND."""
    code = entrypoint.run(command)
    if code != 0:
        raise typer.Exit(code=code)


@app.command("models")
@_reported
def models_command(
    minimal: bool = typer.Option(False, "--minimal", "-m", help="Download only qwen2.5-coder:32b."),
    all_models: bool = typer.Option(False, "--all", "-a", help="Download all 4 models."),
) -> None:
    """Download models inside the container, skipping installed ones."""
    if minimal and all_models:
        raise typer.BadParameter("Use only one of --minimal or --all.", param_hint="--minimal/--all")
    mode = DownloadMode.MINIMAL if minimal else DownloadMode.ALL if all_models else DownloadMode.DEFAULT
    entrypoint.ensure_server(get_settings())
    ModelDownloader().download_mode(mode)
    entrypoint.report_models()


@app.command("welcome")
def welcome_command() -> None:
    """Print the shell welcome banner."""
    entrypoint.print_welcome()


def main(argv: Sequence[str] | None = None) -> int:
    try:
        result = app(args=list(argv) if argv is not None else None, standalone_mode=False)
        return result if isinstance(result, int) else 0
    except SystemExit as exc:
        return int(exc.code or 0)


if __name__ == "__main__":  # pragma: no cover
    app()
