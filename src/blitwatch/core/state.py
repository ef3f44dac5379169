"""TelemetryState: tile ownership grid plus per-client statistics.

The reconciliation engine is the only writer. Everything else (selection,
ranking, rendering) reads it.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace

UNKNOWN_NAME = "unknown"


@dataclass
class ClientStats:
    """Running statistics for one rendering worker."""

    name: str
    average_time: float
    current_count: int = 0
    total_count: int = 0

    def copy(self) -> ClientStats:
        return replace(self)


@dataclass
class TelemetryState:
    """Aggregate view of the render farm at one playback instant."""

    tiles_x: int
    tiles_y: int
    tiles: list[str | None] = field(default_factory=list)
    clients: dict[str, ClientStats] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.tiles_x < 1 or self.tiles_y < 1:
            raise ValueError(
                f"Grid shape must be positive, got {self.tiles_x}x{self.tiles_y}"
            )
        if not self.tiles:
            self.tiles = [None] * (self.tiles_x * self.tiles_y)
        elif len(self.tiles) != self.tiles_x * self.tiles_y:
            raise ValueError(
                f"Expected {self.tiles_x * self.tiles_y} tiles, got {len(self.tiles)}"
            )
        self.clear_stale_owners()

    @classmethod
    def empty(cls, tiles_x: int = 1, tiles_y: int = 1) -> TelemetryState:
        return cls(tiles_x=tiles_x, tiles_y=tiles_y)

    @property
    def tile_count(self) -> int:
        return self.tiles_x * self.tiles_y

    def owner(self, tile: int) -> str | None:
        """Return the known client owning ``tile``, or None.

        Construction clears owner ids with no entry in ``clients``; one that
        lost its entry afterwards still counts as unowned here.
        """
        client_id = self.tiles[tile]
        if client_id is None or client_id not in self.clients:
            return None
        return client_id

    def clear_stale_owners(self) -> int:
        """Unset tiles whose owner has no entry in ``clients``.

        Returns how many tiles were cleared.
        """
        cleared = 0
        for i, client_id in enumerate(self.tiles):
            if client_id is not None and client_id not in self.clients:
                self.tiles[i] = None
                cleared += 1
        return cleared

    def tiles_owned_by(self, client_id: str) -> list[int]:
        return [i for i, owner in enumerate(self.tiles) if owner == client_id]

    def ownership_counts(self) -> dict[str, int]:
        """Re-derive ``current_count`` for every client from the grid."""
        counts = Counter(owner for owner in self.tiles if owner is not None)
        return {client_id: counts.get(client_id, 0) for client_id in self.clients}

    def is_consistent(self) -> bool:
        """True when every client's ``current_count`` matches the grid."""
        derived = self.ownership_counts()
        return all(
            stats.current_count == derived[client_id]
            for client_id, stats in self.clients.items()
        )

    def copy(self) -> TelemetryState:
        return TelemetryState(
            tiles_x=self.tiles_x,
            tiles_y=self.tiles_y,
            tiles=list(self.tiles),
            clients={cid: stats.copy() for cid, stats in self.clients.items()},
        )

    def replace_with(self, other: TelemetryState) -> None:
        """Swap in a copy of ``other`` while keeping this object's identity."""
        fresh = other.copy()
        self.tiles_x = fresh.tiles_x
        self.tiles_y = fresh.tiles_y
        self.tiles = fresh.tiles
        self.clients = fresh.clients
