from __future__ import annotations

import subprocess
from types import SimpleNamespace

import pytest

from aicli import gpu
from aicli.gpu import GpuInfo, discover_gpus, parse_nvidia_smi


SMI_OUTPUT = """\
0, NVIDIA GeForce RTX 5090, 32607 MiB, 31890 MiB
1, NVIDIA RTX A6000, 49140 MiB, 48000 MiB
"""


def test_parse_nvidia_smi_rows() -> None:
    gpus = parse_nvidia_smi(SMI_OUTPUT)

    assert gpus == [
        GpuInfo(0, "NVIDIA GeForce RTX 5090", "32607 MiB", "31890 MiB"),
        GpuInfo(1, "NVIDIA RTX A6000", "49140 MiB", "48000 MiB"),
    ]
    assert gpus[0].describe() == "NVIDIA GeForce RTX 5090, 32607 MiB total, 31890 MiB free"


def test_parse_skips_short_rows_and_tolerates_bad_index() -> None:
    gpus = parse_nvidia_smi("garbage\n[N/A], Tesla T4, 15360 MiB, 15000 MiB\n")

    assert len(gpus) == 1
    assert gpus[0].index == 0
    assert gpus[0].name == "Tesla T4"


def test_no_binary_means_no_gpus(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gpu.shutil, "which", lambda _name: None)

    assert discover_gpus() == []


def test_failed_probe_means_no_gpus(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gpu.shutil, "which", lambda _name: "/usr/bin/nvidia-smi")
    monkeypatch.setattr(
        gpu.subprocess,
        "run",
        lambda *a, **k: SimpleNamespace(returncode=9, stdout="", stderr="driver mismatch"),
    )

    assert discover_gpus() == []


def test_probe_timeout_means_no_gpus(monkeypatch: pytest.MonkeyPatch) -> None:
    def _timeout(*args: object, **kwargs: object) -> None:
        raise subprocess.TimeoutExpired(cmd="nvidia-smi", timeout=1)

    monkeypatch.setattr(gpu.shutil, "which", lambda _name: "/usr/bin/nvidia-smi")
    monkeypatch.setattr(gpu.subprocess, "run", _timeout)

    assert discover_gpus(timeout=1) == []


def test_successful_probe(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(gpu.shutil, "which", lambda _name: "/usr/bin/nvidia-smi")
    monkeypatch.setattr(
        gpu.subprocess,
        "run",
        lambda *a, **k: SimpleNamespace(returncode=0, stdout=SMI_OUTPUT, stderr=""),
    )

    assert [g.index for g in discover_gpus()] == [0, 1]
