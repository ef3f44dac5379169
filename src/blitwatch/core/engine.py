"""ReconciliationEngine: replays due events onto the telemetry state.

Called once per refresh. Every queued event whose timestamp has been reached
by the replay clock is applied in FIFO order; there is no per-tick limit.
An event that does not fit the current grid is logged and skipped so one bad
record never stalls the stream.
"""

from __future__ import annotations

import logging

from blitwatch.core.clock import ReplayClock
from blitwatch.core.events import BlitTile, EventApplyError, MetaEvent, Snapshot
from blitwatch.core.ingest import EventIngestor
from blitwatch.core.state import UNKNOWN_NAME, ClientStats, TelemetryState

logger = logging.getLogger(__name__)

EMA_DECAY = 0.999
EMA_WEIGHT = 0.001


def apply_blit(state: TelemetryState, blit: BlitTile) -> None:
    """Move ``blit.tile`` to ``blit.client_id`` and update its stats."""
    if not 0 <= blit.tile < len(state.tiles):
        raise EventApplyError(
            f"Tile {blit.tile} outside {state.tiles_x}x{state.tiles_y} grid"
        )

    prev = state.tiles[blit.tile]
    if prev is not None and prev in state.clients:
        state.clients[prev].current_count -= 1

    client = state.clients.get(blit.client_id)
    if client is None:
        # A returning id must not inherit tiles it held before it was dropped.
        state.clear_stale_owners()
        client = ClientStats(name=blit.name or UNKNOWN_NAME, average_time=blit.time)
        state.clients[blit.client_id] = client
    state.tiles[blit.tile] = blit.client_id

    client.current_count += 1
    client.total_count += 1
    client.average_time = client.average_time * EMA_DECAY + blit.time * EMA_WEIGHT
    if blit.name is not None:
        client.name = blit.name


def apply_event(state: TelemetryState, event: MetaEvent) -> None:
    if isinstance(event.payload, Snapshot):
        state.replace_with(event.payload.to_state())
    else:
        apply_blit(state, event.payload)


class ReconciliationEngine:
    """Drains the ingestor against the replay clock."""

    def __init__(
        self,
        ingestor: EventIngestor,
        clock: ReplayClock,
        state: TelemetryState | None = None,
    ):
        self._ingestor = ingestor
        self._clock = clock
        self._state = state if state is not None else TelemetryState.empty()
        self.applied_events = 0
        self.skipped_events = 0

    @property
    def state(self) -> TelemetryState:
        return self._state

    @property
    def idle(self) -> bool:
        return self._ingestor.peek_ts() is None

    def tick(self) -> int:
        """Apply every due event. Returns how many were applied."""
        now = self._clock.now()
        applied = 0
        while (event := self._ingestor.pop_due(now)) is not None:
            try:
                apply_event(self._state, event)
            except EventApplyError as e:
                self.skipped_events += 1
                logger.warning("Skipping event at ts=%s: %s", event.ts, e)
                continue
            applied += 1
        self.applied_events += applied
        return applied
