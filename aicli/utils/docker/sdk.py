"""Low-level Docker SDK access and streaming helpers (internal)."""

from __future__ import annotations

import contextlib
from queue import Queue
import threading
from typing import TYPE_CHECKING

from aicli.utils.log_utils import logger

from .errors import RuntimeUnavailable


try:  # Local import aliasing to avoid hard failure at import time
    import docker  # type: ignore
except Exception as _e:  # pragma: no cover - host/env dependent
    docker = None  # type: ignore
    _IMPORT_ERROR = _e
else:
    _IMPORT_ERROR = None


if TYPE_CHECKING:  # pragma: no cover - typing only
    from docker import DockerClient as _DockerClient
    from docker.models.containers import Container as _DockerContainer
else:  # pragma: no cover - runtime fallback when typing info unavailable
    _DockerClient = object
    _DockerContainer = object


def ensure_docker_sdk() -> _DockerClient:
    """Return connected Docker client or raise RuntimeUnavailable with guidance."""
    if _IMPORT_ERROR is not None or docker is None:
        raise RuntimeUnavailable(
            "The 'docker' Python package is required. Install it with: pip install docker"
        ) from _IMPORT_ERROR
    try:
        client = docker.from_env()  # type: ignore[union-attr]
        client.ping()
        return client
    except FileNotFoundError as e:  # pragma: no cover
        raise RuntimeUnavailable(
            "Could not find the Docker socket. Is the Docker daemon running? "
            "Start it (e.g., 'systemctl start docker' or 'colima start' / 'docker desktop') and retry."
        ) from e
    except PermissionError as e:  # pragma: no cover
        raise RuntimeUnavailable(
            "Permission denied accessing the Docker socket. Add your user to the 'docker' group or run with appropriate permissions."
        ) from e
    except Exception as e:  # pragma: no cover
        raise RuntimeUnavailable(
            "Failed to connect to Docker daemon via SDK. Ensure the daemon is running."
        ) from e


def is_not_found(exc: BaseException) -> bool:
    """Return True when ``exc`` is the SDK's 404 ``NotFound`` error."""
    if docker is not None and isinstance(exc, docker.errors.NotFound):  # type: ignore[union-attr]
        return True
    return type(exc).__name__ in {"NotFound", "ImageNotFound"}


def make_device_requests(gpu: bool) -> list[object] | None:
    """Request every GPU for the container, or none when ``gpu`` is False."""
    if not gpu:
        return None
    from docker.types import DeviceRequest  # type: ignore

    return [DeviceRequest(count=-1, capabilities=[["gpu"]])]


def container_is_running(container: _DockerContainer) -> bool:
    """Return True if docker container object status is 'running'."""
    with contextlib.suppress(Exception):
        container.reload()
        return getattr(container, "status", None) == "running"
    return False


def stream_logs(
    container: _DockerContainer,
    line_queue: Queue[str],
    stop_event: threading.Event,
    since: float | None = None,
) -> None:
    """Follow container logs and enqueue decoded lines until stopped."""
    kwargs = {"since": int(since)} if since is not None else {}
    try:
        for chunk in container.logs(stream=True, follow=True, **kwargs):
            if stop_event.is_set():
                break
            try:
                text = chunk.decode("utf-8", errors="replace")
            except Exception:
                text = str(chunk)
            frames = text.split("\r")
            last_frame = frames[-1]
            for ln in last_frame.splitlines():
                line_queue.put(ln)
    except Exception as e:
        # Log stream ends when the container stops or the daemon drops it.
        logger.debug(f"Container log stream closed: {e}")
