"""Workspace path validation and host-path normalisation."""

from __future__ import annotations

from pathlib import Path, PureWindowsPath
import re
import sys

from aicli.utils.docker.errors import PathNotFound


_DRIVE_RE = re.compile(r"^([A-Za-z]):[\\/]?")


def to_runtime_path(path: str, platform: str | None = None) -> str:
    """Rewrite a host path into the syntax the Docker daemon expects.

    On Windows hosts a drive-letter path such as ``C:\\Users\\me\\proj``
    becomes ``/c/Users/me/proj``. Other platforms pass through unchanged.
    """
    platform = platform or sys.platform
    if not platform.startswith(("win", "cygwin", "msys")):
        return path
    match = _DRIVE_RE.match(path)
    if not match:
        return path.replace("\\", "/")
    drive = match.group(1).lower()
    rest = PureWindowsPath(path[match.end():]).as_posix().lstrip("/")
    return f"/{drive}/{rest}" if rest and rest != "." else f"/{drive}"


def resolve_workspace(path: str | Path | None) -> Path:
    """Return the absolute workspace directory, defaulting to the cwd.

    Raises:
        PathNotFound: When the path does not exist or is not a directory.
    """
    candidate = Path(path).expanduser() if path else Path.cwd()
    if not candidate.is_dir():
        raise PathNotFound(str(candidate))
    return candidate.resolve()
