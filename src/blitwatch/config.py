"""Dashboard configuration loader."""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path

from blitwatch.core.clock import SKEW_MS
from blitwatch.core.selection import SortKey

SEGMENTS_DIR_ENV = "BLITWATCH_SEGMENTS_DIR"


@dataclass
class HighlightConfig:
    rank: int | None = None  # hovered row in the ranking table
    pointer: tuple[float, float] | None = None  # normalised (x, y) over the grid


@dataclass
class DashboardConfig:
    segments_dir: Path = Path("static/livevideo")
    playlist: str = "playlist.m3u8"
    refresh_rate: float = 0.25  # seconds between ticks
    poll_interval: float = 1.0  # seconds between playlist polls
    skew_ms: float = SKEW_MS
    sort_key: SortKey = SortKey.TOTAL_COUNT
    start_at_live_edge: bool = True
    highlight: HighlightConfig = field(default_factory=HighlightConfig)


def parse_pointer(raw) -> tuple[float, float]:
    """Accept ``[x, y]`` or ``"x,y"`` with both coordinates in [0, 1]."""
    if isinstance(raw, str):
        raw = raw.split(",")
    x, y = (float(v) for v in raw)
    if not (0.0 <= x <= 1.0 and 0.0 <= y <= 1.0):
        raise ValueError(f"Pointer must be inside [0, 1] x [0, 1], got ({x}, {y})")
    return x, y


def apply_env(config: DashboardConfig) -> DashboardConfig:
    segments_dir = os.getenv(SEGMENTS_DIR_ENV)
    if segments_dir:
        config.segments_dir = Path(segments_dir)
    return config


def default_config() -> DashboardConfig:
    return apply_env(DashboardConfig())


def load_config(path: Path) -> DashboardConfig:
    """Load dashboard config from YAML file."""
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    d = raw.get("dashboard", {})
    defaults = DashboardConfig()

    highlight = HighlightConfig()
    hl_raw = raw.get("highlight")
    if hl_raw:
        pointer = hl_raw.get("pointer")
        highlight = HighlightConfig(
            rank=hl_raw.get("rank"),
            pointer=parse_pointer(pointer) if pointer is not None else None,
        )

    config = DashboardConfig(
        segments_dir=Path(d.get("segments_dir", defaults.segments_dir)),
        playlist=d.get("playlist", defaults.playlist),
        refresh_rate=d.get("refresh_rate", defaults.refresh_rate),
        poll_interval=d.get("poll_interval", defaults.poll_interval),
        skew_ms=d.get("skew_ms", defaults.skew_ms),
        sort_key=SortKey(d.get("sort_key", defaults.sort_key.value)),
        start_at_live_edge=d.get("start_at_live_edge", defaults.start_at_live_edge),
        highlight=highlight,
    )
    return apply_env(config)
