"""Selection resolver and client ranking for the dashboard views.

Hovering a row in the ranking table wins over pointing at a tile, so a
worker's tiles can be inspected from the table while the pointer is
elsewhere.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import Enum

from blitwatch.core.state import TelemetryState


class SortKey(str, Enum):
    NAME = "name"
    AVERAGE_TIME = "average_time"
    CURRENT_COUNT = "current_count"
    TOTAL_COUNT = "total_count"


def rank_clients(state: TelemetryState, sort_key: SortKey | str) -> list[str]:
    """Client ids ordered for the ranking table.

    Names and render times sort ascending, tile counts descending.
    Ties fall back to client id ascending.
    """
    key = SortKey(sort_key)
    clients = state.clients
    ids = sorted(clients)  # tie-break order
    if key is SortKey.NAME:
        return sorted(ids, key=lambda cid: clients[cid].name)
    if key is SortKey.AVERAGE_TIME:
        return sorted(ids, key=lambda cid: clients[cid].average_time)
    if key is SortKey.CURRENT_COUNT:
        return sorted(ids, key=lambda cid: clients[cid].current_count, reverse=True)
    return sorted(ids, key=lambda cid: clients[cid].total_count, reverse=True)


def tile_at(state: TelemetryState, x: float, y: float) -> int:
    """Tile index under a pointer at normalised viewport coordinates."""
    col = min(max(math.floor(x * state.tiles_x), 0), state.tiles_x - 1)
    row = min(max(math.floor(y * state.tiles_y), 0), state.tiles_y - 1)
    return col + row * state.tiles_x


def resolve(
    state: TelemetryState,
    pointer: tuple[float, float] | None,
    hovered_rank: int | None,
    sorted_client_ids: Sequence[str],
) -> str | None:
    """Return the client to highlight, or None."""
    if hovered_rank is not None and 0 <= hovered_rank < len(sorted_client_ids):
        return sorted_client_ids[hovered_rank]
    if pointer is not None:
        return state.owner(tile_at(state, *pointer))
    return None
