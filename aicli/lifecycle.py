"""Lifecycle controller for the AI CLI container.

Every operation follows the same shape: read the current state of the named
image/container/volume, branch, issue one runtime call, report the outcome.

State machine (container only)::

    ABSENT  --build+run--> RUNNING --stop--> STOPPED --start--> RUNNING
    STOPPED --delete-----> ABSENT
    RUNNING --delete-----> disallowed (stop first)

The model volume is never removed by a container transition. Only
``manage_volume`` can delete it, and only after two distinct confirmations.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
import re
import shutil
import subprocess
import time

from aicli.config import MODEL_SERVER_ENV, MODELS_MOUNT, READY_MARKER, AicliSettings, get_settings
from aicli.config.settings import ResourceNames
from aicli.gpu import GpuInfo, discover_gpus
from aicli.models import DownloadMode, DownloadReport, ModelDownloader
from aicli.paths import resolve_workspace, to_runtime_path
from aicli.prompts import Prompter
from aicli.utils.docker import (
    BuildFailed,
    ContainerNotRunning,
    ContainerState,
    DockerContainer,
    DockerError,
    ResourceRepository,
    RuntimeUnavailable,
    wait_for_readiness,
)
from aicli.utils.docker.logging_utils import log_multiline
from aicli.utils.log_utils import logger


TerminalRunner = Callable[[Sequence[str]], int]

# Restart, recreate, or leave the stopped container alone.
RESTART, RECREATE, CANCEL = "r", "c", "n"


def run_docker_cli(args: Sequence[str]) -> int:
    """Hand the terminal to the ``docker`` CLI (attach / interactive exec)."""
    docker_bin = shutil.which("docker")
    if docker_bin is None:
        raise RuntimeUnavailable("The 'docker' command-line client was not found on PATH.")
    return subprocess.call([docker_bin, *args])


@dataclass
class ResourceStatus:
    image: str
    image_present: bool
    container: str
    container_state: ContainerState
    volume: str
    volume_present: bool
    volume_size: str
    workspace: str | None
    gpus: list[GpuInfo] = field(default_factory=list)


class LifecycleController:
    """Inspect and transition the image/container/volume triple.

    Args:
        settings: Settings snapshot; defaults to ``get_settings()``.
        repository: Resource handle; defaults to one built from settings.
        prompter: Source of interactive answers.
        gpu_probe: Callable returning visible GPUs.
        terminal: Runs interactive ``docker`` CLI commands.
    """

    def __init__(
        self,
        settings: AicliSettings | None = None,
        repository: ResourceRepository | None = None,
        prompter: Prompter | None = None,
        gpu_probe: Callable[[], list[GpuInfo]] = discover_gpus,
        terminal: TerminalRunner = run_docker_cli,
    ) -> None:
        self.settings = settings or get_settings()
        self.repo = repository or ResourceRepository(self.settings.names)
        self.prompter = prompter or Prompter()
        self._gpu_probe = gpu_probe
        self._terminal = terminal

    @property
    def names(self) -> ResourceNames:
        return self.settings.names

    @property
    def log_prefix(self) -> str:
        return f"[{self.names.container}]"

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------
    def image_exists(self) -> bool:
        return self.repo.image_exists()

    def container_state(self) -> ContainerState:
        return self.repo.container_state()

    def volume_exists(self) -> bool:
        return self.repo.volume_exists()

    def volume_approx_size(self) -> str:
        return self.repo.volume_size()

    def gpus(self) -> list[GpuInfo]:
        return self._gpu_probe()

    def gpu_available(self) -> bool:
        return bool(self.gpus())

    def status(self, *, include_size: bool = True) -> ResourceStatus:
        """Snapshot every resource. ``include_size`` False skips the disk-usage query."""
        volume_present = self.volume_exists()
        return ResourceStatus(
            image=self.names.image,
            image_present=self.image_exists(),
            container=self.names.container,
            container_state=self.container_state(),
            volume=self.names.volume,
            volume_present=volume_present,
            volume_size=self.volume_approx_size() if include_size and volume_present else "",
            workspace=self.repo.workspace_source(),
            gpus=self.gpus(),
        )

    def _require_running(self) -> DockerContainer:
        container = self.repo.container()
        if container is None or not container.is_running():
            raise ContainerNotRunning(
                f"Container '{self.names.container}' is not running. Start it first."
            )
        return container

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build(self, no_cache: bool = False) -> bool:
        try:
            self.repo.build_image(self.settings.build_context, no_cache=no_cache)
        except BuildFailed as e:
            logger.error(f"Build failed: {e}")
            return False
        logger.info(f"[green]Image '{self.names.image}' built successfully.[/green]")
        return True

    def rebuild(self) -> bool:
        if not self.build(no_cache=True):
            return False
        if self.container_state() is not ContainerState.ABSENT:
            logger.warning(
                f"Container '{self.names.container}' still uses the previous image. "
                "Stop it and choose 'recreate' on start to pick up the new build."
            )
        return True

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------
    def start(self, workspace_path: str | Path | None = None) -> bool:
        """Bring the container to ``running``.

        Returns True when this call started or created the container, False
        when it was already running or the user declined.

        Raises:
            PathNotFound: The workspace path does not exist.
            BuildFailed: The image was missing and could not be built.
        """
        state = self.container_state()

        if state is ContainerState.RUNNING:
            logger.info(f"Container '{self.names.container}' is already running.")
            if self.prompter.confirm("Attach to it now?", default=True):
                self.attach()
            return False

        if state is ContainerState.STOPPED:
            source = self.repo.workspace_source() or "unknown"
            logger.info(
                f"Container '{self.names.container}' exists but is stopped "
                f"(workspace: {source})."
            )
            choice = self.prompter.choose(
                "Restart it (r), recreate it with a new workspace (c), or do nothing (n)?",
                [RESTART, RECREATE, CANCEL],
                default=RESTART,
            )
            if choice == RESTART:
                return self._restart()
            if choice == RECREATE:
                workspace = resolve_workspace(workspace_path)
                # The old container is only removed once a replacement can run.
                self._ensure_image()
                if not self.delete_container():
                    return False
                return self._run(workspace)
            logger.info("Nothing changed.")
            return False

        workspace = resolve_workspace(workspace_path)
        self._ensure_image()
        return self._run(workspace)

    def _ensure_image(self) -> None:
        if self.image_exists():
            return
        logger.info(f"Image '{self.names.image}' not found; building it first.")
        self.repo.build_image(self.settings.build_context)
        logger.info(f"[green]Image '{self.names.image}' built successfully.[/green]")

    def _restart(self) -> bool:
        container = self.repo.container()
        if container is None:
            raise ContainerNotRunning(f"Container '{self.names.container}' disappeared.")
        since = time.time()
        logger.info(f"Starting container '{self.names.container}'...")
        container.start()
        self._await_ready(container, since)
        self._offer_attach()
        return True

    def _run(self, workspace: Path) -> bool:
        gpus = self.gpus()
        if gpus:
            logger.info(f"GPU detected ({gpus[0].name}); enabling GPU access.")
        else:
            logger.warning("No NVIDIA GPU detected; the model server will run in CPU mode.")

        had_volume = self.volume_exists()
        host_path = to_runtime_path(str(workspace))
        logger.info(f"Workspace: {workspace} -> /workspace")
        logger.info(f"Models:    volume '{self.names.volume}' -> {MODELS_MOUNT}")

        since = time.time()
        container = self.repo.run_container(
            workspace=host_path,
            environment=MODEL_SERVER_ENV,
            gpu=bool(gpus),
        )
        if not had_volume:
            logger.info(f"Created model volume '{self.names.volume}'.")
        logger.info(f"[green]Container '{self.names.container}' started.[/green]")
        self._await_ready(container, since)
        self._offer_attach()
        return True

    def _await_ready(self, container: DockerContainer, since: float) -> None:
        try:
            wait_for_readiness(
                container,
                ready_pattern=re.escape(READY_MARKER),
                ready_timeout=self.settings.ready_timeout,
                since=since,
                log_prefix=self.log_prefix,
            )
        except (TimeoutError, DockerError) as e:
            logger.warning(f"Container readiness not confirmed: {e}")

    def _offer_attach(self) -> None:
        if self.prompter.confirm("Attach to the container now?", default=True):
            self.attach()

    # ------------------------------------------------------------------
    # Stop / delete
    # ------------------------------------------------------------------
    def stop(self) -> bool:
        """Stop the running container, then offer to delete it."""
        container = self._require_running()
        logger.info(f"Stopping container '{self.names.container}'...")
        container.stop()
        logger.info(
            f"[green]Container stopped.[/green] Models in volume '{self.names.volume}' are kept."
        )
        if self.prompter.confirm(
            "Also delete the container? (the model volume is kept)", default=False
        ):
            self.delete_container()
        return True

    def delete_container(self) -> bool:
        """Remove the stopped container. Never touches the model volume."""
        container = self.repo.container()
        if container is None:
            logger.info(f"No container named '{self.names.container}' to delete.")
            return False
        if container.is_running():
            logger.error(
                f"Container '{self.names.container}' is running; stop it before deleting."
            )
            return False
        container.remove()
        logger.info(
            f"[green]Container '{self.names.container}' deleted.[/green] "
            f"Volume '{self.names.volume}' is kept."
        )
        return True

    # ------------------------------------------------------------------
    # Interactive access
    # ------------------------------------------------------------------
    def attach(self) -> int:
        self._require_running()
        logger.info("Attaching. Detach with Ctrl-P Ctrl-Q to leave it running.")
        return self._terminal(["attach", self.names.container])

    def open_shell(self) -> int:
        self._require_running()
        return self._terminal(["exec", "-it", self.names.container, self.settings.shell])

    def show_logs(self, tail: int | None = 100) -> str:
        container = self.repo.container()
        if container is None:
            raise ContainerNotRunning(f"Container '{self.names.container}' does not exist.")
        text = container.logs(tail=tail)
        log_multiline(text, self.log_prefix)
        return text

    # ------------------------------------------------------------------
    # Models and volume
    # ------------------------------------------------------------------
    def download_models(self, mode: DownloadMode = DownloadMode.DEFAULT) -> DownloadReport:
        container = self._require_running()
        downloader = ModelDownloader(runner=container.exec, log_prefix=self.log_prefix)
        return downloader.download_mode(mode)

    def manage_volume(self) -> bool:
        """Report on the model volume and offer a double-confirmed deletion.

        Returns True only when the volume was deleted.
        """
        volume = self.names.volume
        exists = self.volume_exists()
        logger.info(f"Volume:  {volume}")
        logger.info(f"Status:  {'present' if exists else 'not created'}")
        logger.info(f"Size:    {self.volume_approx_size()}")
        logger.info(f"Mounted: {MODELS_MOUNT} (models persist across container restarts)")
        if not exists:
            return False

        users = self.repo.volume_users()
        if users:
            logger.info(f"Used by: {', '.join(users)}")
            logger.info("Delete the container first to make the volume removable.")
            return False

        if not self.prompter.confirm(
            f"Delete volume '{volume}' and ALL downloaded models?", default=False
        ):
            logger.info("Volume kept.")
            return False
        typed = self.prompter.text(f"Type the volume name ({volume}) to confirm")
        if typed != volume:
            logger.info("Confirmation did not match. Volume kept.")
            return False

        self.repo.remove_volume()
        logger.info(f"[green]Volume '{volume}' deleted.[/green]")
        return True
