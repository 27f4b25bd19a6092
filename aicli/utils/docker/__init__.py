"""High-level Docker utilities package.

This package provides structured helpers for:
    * Reaching the Docker daemon (``ensure_docker_sdk``), with clear
        ``RuntimeUnavailable`` errors when it cannot be reached
    * Querying and changing the managed image/container/volume triple by name
        (``ResourceRepository``)
    * Waiting for a readiness log pattern with inactivity timeout semantics
        (``wait_for_readiness``)

Principles:
    * Keep low-level SDK usage encapsulated (see ``sdk.py``) so higher-level
        code can be easily mocked in tests.
    * Avoid side effects at import time (no client construction until needed).
    * Never remove a named volume as a side effect of a container operation.
"""

from .container import DockerContainer
from .errors import (
    BuildFailed,
    ContainerNotRunning,
    DockerError,
    ModelPullFailed,
    PathNotFound,
    RuntimeUnavailable,
)
from .operations import ContainerState, ResourceRepository, format_bytes, wait_for_readiness
from .sdk import ensure_docker_sdk


__all__ = [
    "BuildFailed",
    "ContainerNotRunning",
    "ContainerState",
    "DockerContainer",
    "DockerError",
    "ModelPullFailed",
    "PathNotFound",
    "ResourceRepository",
    "RuntimeUnavailable",
    "ensure_docker_sdk",
    "format_bytes",
    "wait_for_readiness",
]
