"""Numbered interactive menu mirroring the command set."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from aicli.lifecycle import LifecycleController
from aicli.models import DownloadMode
from aicli.prompts import Prompter, console
from aicli.utils.docker import DockerError, PathNotFound, RuntimeUnavailable
from aicli.utils.log_utils import logger

from .status import render_status


QUIT = "0"


def _start(controller: LifecycleController, prompter: Prompter) -> None:
    default = str(Path.cwd())
    while True:
        path = prompter.text("Workspace folder to mount at /workspace", default=default)
        try:
            controller.start(path or default)
            return
        except PathNotFound as e:
            logger.error(str(e))
            if not prompter.confirm("Try another path?", default=True):
                return


def _download(controller: LifecycleController, prompter: Prompter) -> None:
    modes = [mode.value for mode in DownloadMode]
    choice = prompter.choose("Which model set?", modes, default=DownloadMode.DEFAULT.value)
    controller.download_models(DownloadMode(choice))


def _logs(controller: LifecycleController, prompter: Prompter) -> None:
    controller.show_logs(tail=100)


MenuAction = Callable[[LifecycleController, Prompter], object]

MENU: dict[str, tuple[str, MenuAction]] = {
    "1": ("Start container (builds the image if needed)", _start),
    "2": ("Stop container", lambda c, p: c.stop()),
    "3": ("Attach to running container", lambda c, p: c.attach()),
    "4": ("Open an additional shell", lambda c, p: c.open_shell()),
    "5": ("Show container logs", _logs),
    "6": ("Download models", _download),
    "7": ("Build image", lambda c, p: c.build()),
    "8": ("Rebuild image (no cache)", lambda c, p: c.rebuild()),
    "9": ("Delete container (models are kept)", lambda c, p: c.delete_container()),
    "10": ("Manage model volume", lambda c, p: c.manage_volume()),
    "11": ("Show status", lambda c, p: render_status(c.status())),
}


def run_menu(controller: LifecycleController, prompter: Prompter) -> int:
    """Loop until the user quits. Only ``RuntimeUnavailable`` ends it early."""
    while True:
        render_status(controller.status(include_size=False))
        for key, (label, _action) in MENU.items():
            console.print(f"  [bold]{key:>2}[/bold]) {label}")
        console.print(f"  [bold]{QUIT:>2}[/bold]) Quit")

        choice = prompter.choose("Select an option", [*MENU, QUIT], default=QUIT)
        if choice == QUIT:
            return 0
        _label, action = MENU[choice]
        try:
            action(controller, prompter)
        except RuntimeUnavailable:
            raise
        except DockerError as e:
            logger.error(str(e))
