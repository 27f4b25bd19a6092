"""Best-effort NVIDIA GPU probe.

Parses ``nvidia-smi`` CSV output. Any failure (binary missing, driver error,
timeout) yields an empty list so callers degrade to CPU mode.
"""

from __future__ import annotations

from dataclasses import dataclass
import shutil
import subprocess

from aicli.utils.log_utils import logger


NVIDIA_SMI = "nvidia-smi"
_QUERY = [
    NVIDIA_SMI,
    "--query-gpu=index,name,memory.total,memory.free",
    "--format=csv,noheader",
]


@dataclass(frozen=True)
class GpuInfo:
    index: int
    name: str
    memory_total: str   # e.g. "32607 MiB"
    memory_free: str

    def describe(self) -> str:
        return f"{self.name}, {self.memory_total} total, {self.memory_free} free"


def parse_nvidia_smi(output: str) -> list[GpuInfo]:
    gpus: list[GpuInfo] = []
    for line in output.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 4:
            continue
        index, name, total, free = parts[:4]
        try:
            idx = int(index)
        except ValueError:
            idx = len(gpus)
        gpus.append(GpuInfo(index=idx, name=name, memory_total=total, memory_free=free))
    return gpus


def discover_gpus(timeout: float = 10.0) -> list[GpuInfo]:
    """Return GPUs visible to ``nvidia-smi``, or an empty list."""
    if shutil.which(NVIDIA_SMI) is None:
        logger.debug("nvidia-smi not found on PATH")
        return []
    try:
        result = subprocess.run(_QUERY, capture_output=True, text=True, timeout=timeout)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"nvidia-smi probe failed: {e}")
        return []
    if result.returncode != 0:
        logger.debug(f"nvidia-smi exit {result.returncode}: {result.stderr.strip()}")
        return []
    gpus = parse_nvidia_smi(result.stdout)
    logger.debug(f"nvidia-smi: discovered {len(gpus)} GPU(s)")
    return gpus


def report_gpus(gpus: list[GpuInfo]) -> None:
    if gpus:
        logger.info("[green]NVIDIA GPU detected:[/green]")
        for gpu in gpus:
            logger.info(f"   {gpu.describe()}")
    else:
        logger.warning("[yellow]No NVIDIA GPU detected (CPU mode)[/yellow]")
