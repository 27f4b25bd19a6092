"""Dataclass wrapper for a Docker container instance."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .errors import DockerError
from .sdk import container_is_running


@dataclass(slots=True)
class DockerContainer:
    """A lightweight handle to an existing Docker container.

    Attributes:
        id: Container ID (hash string).
        name: Container name.
        image: Image reference used to create it.
    """

    id: str
    name: str
    image: str
    _container: Any = field(repr=False)

    @classmethod
    def wrap(cls, container: Any, *, image: str) -> DockerContainer:
        """Build a handle from an SDK container object."""
        return cls(
            id=getattr(container, "id", ""),
            name=getattr(container, "name", ""),
            image=image,
            _container=container,
        )

    @property
    def status(self) -> str:
        """Return the runtime status string after refreshing it."""
        try:
            self._container.reload()
        except Exception as e:
            raise DockerError(f"Failed to inspect container '{self.name}'.") from e
        return str(getattr(self._container, "status", "unknown"))

    def is_running(self) -> bool:
        """Return whether the container is still running."""
        return container_is_running(self._container)

    def mount_source(self, destination: str) -> str | None:
        """Return the host path or volume name mounted at ``destination``."""
        mounts = (getattr(self._container, "attrs", None) or {}).get("Mounts") or []
        for mount in mounts:
            if mount.get("Destination") == destination:
                return mount.get("Name") or mount.get("Source")
        return None

    def start(self) -> None:
        try:
            self._container.start()
        except Exception as e:
            raise DockerError(f"Failed to start container '{self.name}'.") from e

    def stop(self, timeout: float = 10.0) -> None:
        """Stop the container. The container itself is kept."""
        try:
            self._container.stop(timeout=int(timeout))
        except Exception as e:
            raise DockerError(f"Failed to stop container '{self.name}'.") from e

    def remove(self) -> None:
        """Remove the stopped container.

        Anonymous volumes are left alone (``v=False``) and named volumes are
        never removed by the runtime along with a container.
        """
        try:
            self._container.remove(v=False, force=False)
        except Exception as e:
            raise DockerError(f"Failed to remove container '{self.name}'.") from e

    def logs(self, tail: int | None = None, since: str | None = None) -> str:
        """Return combined stdout/stderr logs as text snapshot."""
        try:
            logs = self._container.logs(
                tail="all" if tail is None else tail, since=since, stdout=True, stderr=True
            )
            if isinstance(logs, bytes | bytearray):
                return logs.decode("utf-8", errors="replace")
            return str(logs)
        except Exception as e:  # pragma: no cover
            raise DockerError("Failed to retrieve container logs.") from e

    def exec(self, command: Sequence[str]) -> tuple[int, str]:
        """Execute a command inside the container and return (exit_code, output)."""
        try:
            res = self._container.exec_run(cmd=list(command))
        except Exception as e:  # pragma: no cover
            raise DockerError("Failed to exec inside Docker container.") from e

        output = res.output
        if isinstance(output, bytes | bytearray):
            text = output.decode("utf-8", errors="replace")
        else:
            text = str(output or "")
        return res.exit_code if res.exit_code is not None else 1, text


__all__ = ["DockerContainer"]
