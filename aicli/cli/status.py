from __future__ import annotations

from rich.table import Table

from aicli.lifecycle import ResourceStatus
from aicli.prompts import console
from aicli.utils.docker import ContainerState


_STATE_STYLE = {
    ContainerState.RUNNING: "green",
    ContainerState.STOPPED: "yellow",
    ContainerState.ABSENT: "dim",
}


def render_status(status: ResourceStatus) -> None:
    """Print the image/container/volume/GPU overview as a table."""
    table = Table(title="AI CLI container", show_header=True, header_style="bold cyan")
    table.add_column("Resource")
    table.add_column("Name")
    table.add_column("State")

    table.add_row(
        "Image",
        status.image,
        "[green]built[/green]" if status.image_present else "[dim]not built[/dim]",
    )
    style = _STATE_STYLE[status.container_state]
    table.add_row(
        "Container",
        status.container,
        f"[{style}]{status.container_state.value}[/{style}]",
    )
    table.add_row(
        "Volume",
        status.volume,
        (status.volume_size or "present") if status.volume_present else "[dim]not created[/dim]",
    )
    if status.workspace:
        table.add_row("Workspace", status.workspace, "-> /workspace")
    if status.gpus:
        for gpu in status.gpus:
            table.add_row("GPU", gpu.name, f"{gpu.memory_free} free / {gpu.memory_total}")
    else:
        table.add_row("GPU", "none", "[yellow]CPU mode[/yellow]")

    console.print(table)
