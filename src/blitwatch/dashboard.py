"""Terminal views for the render farm: ranking table and tile grid.

Pure projections of TelemetryState plus the current highlight. Grid
geometry is recomputed from ``tiles_x``/``tiles_y`` on every render.
"""

from __future__ import annotations

import zlib
from dataclasses import dataclass

from rich.align import Align
from rich.console import Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from blitwatch.core.selection import SortKey
from blitwatch.core.state import TelemetryState

CELL = "██"
EMPTY_CELL = "··"

CLIENT_COLORS = [
    "cyan", "magenta", "green", "yellow", "blue", "red",
    "bright_cyan", "bright_magenta", "bright_green", "bright_yellow",
    "bright_blue", "bright_red", "orange3", "purple", "spring_green2",
    "deep_pink3",
]

COLUMN_TITLES = {
    SortKey.NAME: "Name",
    SortKey.AVERAGE_TIME: "Avg time",
    SortKey.CURRENT_COUNT: "Tiles",
    SortKey.TOTAL_COUNT: "Total",
}


@dataclass
class ReplayStatus:
    """Engine counters shown in the header."""

    playback_ts: float = 0
    pending: int = 0
    applied: int = 0
    skipped: int = 0
    discarded_batches: int = 0
    established: bool = False


def client_color(client_id: str) -> str:
    """Stable color per client, independent of ranking order."""
    return CLIENT_COLORS[zlib.crc32(client_id.encode("utf-8")) % len(CLIENT_COLORS)]


def build_header(state: TelemetryState, status: ReplayStatus) -> Panel:
    title = Text()
    if status.established:
        title.append("LIVE  ", style="bold green")
    else:
        title.append("WAITING  ", style="bold yellow")
    title.append("RENDER FARM  ", style="bold white")
    title.append(f"{len(state.clients)} clients", style="bold")

    sub = Text()
    sub.append(f"Grid {state.tiles_x}x{state.tiles_y}", style="bold")
    sub.append("  |  ", style="dim")
    sub.append(f"Playback {status.playback_ts / 1000:.1f}s", style="bold cyan")
    sub.append("  |  ", style="dim")
    sub.append(f"Pending {status.pending}", style="bold yellow")
    sub.append("  |  ", style="dim")
    sub.append(f"Applied {status.applied}", style="dim")
    if status.skipped or status.discarded_batches:
        sub.append("  |  ", style="dim")
        sub.append(
            f"Skipped {status.skipped} / late batches {status.discarded_batches}",
            style="bold red",
        )

    return Panel(
        Group(Align.center(title), Align.center(sub)),
        border_style="bright_white",
        padding=(0, 1),
    )


def build_ranking_table(
    state: TelemetryState,
    ranked: list[str],
    highlighted: str | None,
    sort_key: SortKey,
) -> Panel:
    table = Table(expand=True, show_edge=False, pad_edge=False)
    table.add_column("#", justify="right", width=3)
    for key in SortKey:
        title = COLUMN_TITLES[key]
        if key is sort_key:
            title += " ▲" if key in (SortKey.NAME, SortKey.AVERAGE_TIME) else " ▼"
        justify = "left" if key is SortKey.NAME else "right"
        table.add_column(title, justify=justify, no_wrap=True)

    for rank, client_id in enumerate(ranked, 1):
        stats = state.clients[client_id]
        name = Text(CELL + " ", style=client_color(client_id))
        name.append(stats.name[:24])
        table.add_row(
            str(rank),
            name,
            f"{stats.average_time * 1000:.0f} ms",
            str(stats.current_count),
            str(stats.total_count),
            style="reverse" if client_id == highlighted else None,
        )

    if not ranked:
        table.add_row("", Text("No clients yet", style="dim italic"), "", "", "")

    return Panel(table, title="[bold]Clients[/bold]", border_style="green", padding=(0, 1))


def build_tile_grid(state: TelemetryState, highlighted: str | None) -> Panel:
    grid = Text()
    for y in range(state.tiles_y):
        for x in range(state.tiles_x):
            owner = state.owner(y * state.tiles_x + x)
            if owner is None:
                grid.append(EMPTY_CELL, style="dim")
            elif highlighted is None or owner == highlighted:
                grid.append(CELL, style=f"bold {client_color(owner)}")
            else:
                grid.append(CELL, style=f"dim {client_color(owner)}")
            grid.append(" ")
        if y < state.tiles_y - 1:
            grid.append("\n")

    title = "[bold]Tiles[/bold]"
    if highlighted is not None and highlighted in state.clients:
        title += f": {escape(state.clients[highlighted].name)}"
    return Panel(Align.center(grid), title=title, border_style="blue", padding=(0, 1))


def render(
    state: TelemetryState,
    ranked: list[str],
    highlighted: str | None,
    sort_key: SortKey,
    status: ReplayStatus,
) -> Group:
    if not status.established:
        waiting = Text("  Waiting for telemetry segments...", style="dim italic")
        return Group(build_header(state, status), waiting)
    return Group(
        build_header(state, status),
        build_tile_grid(state, highlighted),
        build_ranking_table(state, ranked, highlighted, sort_key),
    )
