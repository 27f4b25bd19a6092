from __future__ import annotations

from pathlib import Path

import pytest

from aicli.paths import resolve_workspace, to_runtime_path
from aicli.utils.docker import PathNotFound


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("C:\\Users\\me\\proj", "/c/Users/me/proj"),
        ("D:/data/models", "/d/data/models"),
        ("e:\\", "/e"),
        ("C:", "/c"),
        ("\\\\server\\share", "//server/share"),
    ],
)
def test_windows_drive_paths_are_rewritten(raw: str, expected: str) -> None:
    assert to_runtime_path(raw, platform="win32") == expected


@pytest.mark.parametrize("platform", ["linux", "darwin"])
def test_posix_paths_pass_through(platform: str) -> None:
    assert to_runtime_path("/home/me/proj", platform=platform) == "/home/me/proj"
    assert to_runtime_path("C:\\odd", platform=platform) == "C:\\odd"


def test_resolve_workspace_returns_absolute_directory(tmp_path: Path) -> None:
    target = tmp_path / "proj"
    target.mkdir()

    assert resolve_workspace(str(target)) == target.resolve()


def test_resolve_workspace_defaults_to_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    assert resolve_workspace(None) == tmp_path.resolve()


def test_missing_workspace_raises_path_not_found(tmp_path: Path) -> None:
    missing = tmp_path / "nope"

    with pytest.raises(PathNotFound) as excinfo:
        resolve_workspace(missing)

    assert excinfo.value.path == str(missing)
    assert "Workspace path not found" in str(excinfo.value)


def test_file_is_not_a_workspace(tmp_path: Path) -> None:
    file_path = tmp_path / "notes.txt"
    file_path.write_text("x", encoding="utf-8")

    with pytest.raises(PathNotFound):
        resolve_workspace(file_path)
