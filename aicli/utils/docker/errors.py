"""Custom exception types for Docker helpers."""

from __future__ import annotations


class DockerError(RuntimeError):
    """Raised when Docker-related operations fail.

    Base class for every failure the lifecycle tooling reports.
    """

    pass


class RuntimeUnavailable(DockerError):
    """The Docker SDK is missing or the daemon cannot be reached."""


class PathNotFound(DockerError):
    """A workspace path handed to ``start`` does not exist on the host."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Workspace path not found: {path}")
        self.path = path


class ContainerNotRunning(DockerError):
    """The container is not in the state an operation requires."""


class BuildFailed(DockerError):
    """The image build finished with an error."""


class ModelPullFailed(DockerError):
    """Listing or pulling a model through the model server failed."""


__all__ = [
    "BuildFailed",
    "ContainerNotRunning",
    "DockerError",
    "ModelPullFailed",
    "PathNotFound",
    "RuntimeUnavailable",
]
