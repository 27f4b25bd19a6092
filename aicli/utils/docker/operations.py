"""Resource repository for the managed image, container and volume.

The named container and volume are shared state across every invocation of
the CLI. ``ResourceRepository`` is the single handle through which that state
is read and changed; nothing is cached in memory between calls.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from queue import Empty, Queue
import re
import threading
import time
from typing import Any, Pattern

from aicli.config.settings import MODELS_MOUNT, WORKSPACE_MOUNT, ResourceNames
from aicli.utils.log_utils import logger

from .container import DockerContainer
from .errors import BuildFailed, DockerError
from .logging_utils import log_line, log_multiline, strip_ansi
from .sdk import ensure_docker_sdk, is_not_found, make_device_requests, stream_logs


__all__ = [
    "ContainerState",
    "ResourceRepository",
    "format_bytes",
    "wait_for_readiness",
]


class ContainerState(str, Enum):
    ABSENT = "absent"
    STOPPED = "stopped"
    RUNNING = "running"


_RUNNING_STATUSES = {"running", "restarting"}


def format_bytes(size: int | float) -> str:
    """Render a byte count the way ``docker system df`` does (``1.5GB``)."""
    value = float(size)
    for unit in ("B", "kB", "MB", "GB", "TB"):
        if value < 1000 or unit == "TB":
            return f"{value:.0f}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1000
    return f"{value:.1f}TB"  # pragma: no cover


class ResourceRepository:
    """Query and mutate the image/container/volume triple by name.

    Args:
        names: Resource names from settings.
        client: Optional pre-built Docker client. When omitted a client is
            created on first use via ``ensure_docker_sdk``, which raises
            ``RuntimeUnavailable`` if the daemon cannot be reached.
    """

    def __init__(self, names: ResourceNames, client: Any | None = None) -> None:
        self.names = names
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = ensure_docker_sdk()
        return self._client

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def image_exists(self) -> bool:
        try:
            self.client.images.get(self.names.image)
        except Exception as e:
            if is_not_found(e):
                return False
            raise DockerError(f"Failed to inspect image '{self.names.image}'.") from e
        return True

    def container(self) -> DockerContainer | None:
        """Return a handle to the named container, or None when absent."""
        try:
            raw = self.client.containers.get(self.names.container)
        except Exception as e:
            if is_not_found(e):
                return None
            raise DockerError(f"Failed to inspect container '{self.names.container}'.") from e
        return DockerContainer.wrap(raw, image=self.names.image)

    def container_state(self) -> ContainerState:
        container = self.container()
        if container is None:
            return ContainerState.ABSENT
        if container.status in _RUNNING_STATUSES:
            return ContainerState.RUNNING
        return ContainerState.STOPPED

    def volume_exists(self) -> bool:
        try:
            self.client.volumes.get(self.names.volume)
        except Exception as e:
            if is_not_found(e):
                return False
            raise DockerError(f"Failed to inspect volume '{self.names.volume}'.") from e
        return True

    def volume_size(self) -> str:
        """Return approximate volume size, ``"unknown"`` or ``"not created"``."""
        if not self.volume_exists():
            return "not created"
        try:
            usage = self.client.df()
        except Exception as e:
            logger.debug(f"Disk usage query failed: {e}")
            return "unknown"
        for entry in usage.get("Volumes") or []:
            if entry.get("Name") != self.names.volume:
                continue
            size = (entry.get("UsageData") or {}).get("Size")
            if size is None or size < 0:
                return "unknown"
            return format_bytes(size)
        return "unknown"

    def workspace_source(self) -> str | None:
        """Return the host path the existing container binds at /workspace."""
        container = self.container()
        if container is None:
            return None
        return container.mount_source(WORKSPACE_MOUNT)

    def volume_users(self) -> list[str]:
        """Return names of containers (any state) that mount the volume."""
        try:
            found = self.client.containers.list(
                all=True, filters={"volume": self.names.volume}
            )
        except Exception as e:
            raise DockerError(f"Failed to list containers using '{self.names.volume}'.") from e
        return [getattr(c, "name", "") for c in found]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def build_image(
        self,
        context: Path,
        *,
        no_cache: bool = False,
        log_prefix: str | None = "[build]",
    ) -> None:
        """Build the image from ``context`` and stream its output to the log.

        Raises:
            BuildFailed: Missing Dockerfile, daemon error, or a build step error.
        """
        if not (context / "Dockerfile").is_file():
            raise BuildFailed(f"No Dockerfile found in build context '{context}'.")
        logger.info(
            f"Building image '{self.names.image}' from {context}"
            f"{' (no cache)' if no_cache else ''}. This may take several minutes..."
        )
        try:
            stream = self.client.api.build(
                path=str(context),
                tag=self.names.image,
                nocache=no_cache,
                rm=True,
                decode=True,
            )
            for chunk in stream:
                if "error" in chunk:
                    raise BuildFailed(str(chunk["error"]).strip())
                text = chunk.get("stream")
                if text:
                    log_multiline(text.rstrip("\n"), log_prefix)
        except BuildFailed:
            raise
        except Exception as e:
            raise BuildFailed(f"Image build failed: {e}") from e

    def run_container(
        self,
        *,
        workspace: str,
        environment: Mapping[str, str],
        gpu: bool,
    ) -> DockerContainer:
        """Create and start the named container.

        The workspace is bound at ``/workspace`` and the model volume at
        ``/ollama-models``; the runtime creates the volume on first use. No
        ports are published.
        """
        volumes = {
            workspace: {"bind": WORKSPACE_MOUNT, "mode": "rw"},
            self.names.volume: {"bind": MODELS_MOUNT, "mode": "rw"},
        }
        try:
            raw = self.client.containers.run(
                image=self.names.image,
                name=self.names.container,
                environment=dict(environment),
                volumes=volumes,
                working_dir=WORKSPACE_MOUNT,
                device_requests=make_device_requests(gpu),
                detach=True,
                tty=True,
                stdin_open=True,
            )
        except Exception as e:
            raise DockerError(
                f"Failed to start container '{self.names.container}' from '{self.names.image}': {e}"
            ) from e
        return DockerContainer.wrap(raw, image=self.names.image)

    def remove_volume(self) -> None:
        try:
            self.client.volumes.get(self.names.volume).remove()
        except Exception as e:
            raise DockerError(f"Failed to remove volume '{self.names.volume}': {e}") from e


def wait_for_readiness(
    container: DockerContainer,
    *,
    ready_pattern: str | Pattern[str],
    ready_timeout: float = 60.0,
    check_interval: float = 0.5,
    since: float | None = None,
    log_prefix: str | None = None,
) -> None:
    """Block until container logs match regex or fail.

    Args:
        container: Running container handle.
        ready_pattern: Regex pattern or string to signal readiness.
        ready_timeout: Inactivity timeout in seconds (time since last log line).
        check_interval: Poll interval for waiting on new log lines.
        since: Only consider log lines emitted after this UNIX timestamp, so a
            restarted container is not judged by its previous run.
        log_prefix: Optional prefix prepended to each log line when printing.

    Behavior:
        Uses an *inactivity timeout* semantic: the timer resets on every new
        log line. The container is never stopped or removed here; callers
        decide what a failed wait means.

    Raises:
        TimeoutError: If inactivity timeout elapses first.
        DockerError: If container exits prematurely before readiness.
    """
    pattern: Pattern[str] = (
        re.compile(ready_pattern) if isinstance(ready_pattern, str) else ready_pattern
    )

    line_queue: Queue[str] = Queue(maxsize=10000)
    stop_event = threading.Event()

    t = threading.Thread(
        target=stream_logs,
        args=(container._container, line_queue, stop_event),
        kwargs={"since": since},
        daemon=True,
    )
    t.start()

    last_log_time = time.time()
    try:
        while True:
            try:
                line = line_queue.get(timeout=check_interval)
            except Empty:
                if not container.is_running():
                    raise DockerError("Container exited before readiness was detected.")
                if time.time() - last_log_time > ready_timeout:
                    raise TimeoutError(
                        "No new container logs received within inactivity timeout before readiness pattern matched."
                    )
                continue
            log_line(line, log_prefix)
            if pattern.search(strip_ansi(line)):
                return
            last_log_time = time.time()
    finally:
        stop_event.set()
        t.join(timeout=1.0)
