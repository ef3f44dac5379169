"""MetaEvent: time-stamped telemetry events and their wire codec.

Each event carries exactly one payload: a full ``Snapshot`` of the
telemetry state (used to resync when joining a stream) or an incremental
``BlitTile`` recording one tile redraw by one client.

Wire shape (one element of a segment's JSON array):

    {"ts": 1234, "payload": {"snapshot": {...}}}
    {"ts": 1250, "payload": {"blitTile": {"tile": 3, "client_id": 7, "time": 0.41, "name": null}}}

Decoding validates against ``schemas/meta_event.json``. A payload with
neither tag or with both tags is rejected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Union

import jsonschema

from blitwatch.core.state import UNKNOWN_NAME, ClientStats, TelemetryState

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "meta_event.json"


class MalformedEventError(ValueError):
    """A raw event could not be decoded into a MetaEvent."""


class EventApplyError(ValueError):
    """A decoded event does not fit the current telemetry state."""


@dataclass(frozen=True)
class Snapshot:
    """Complete replacement value for the telemetry state.

    ``clients`` is a read-only view. ``from_state`` and ``to_state`` both copy
    the ClientStats, so no state shares them with a snapshot.
    """

    tiles_x: int
    tiles_y: int
    tiles: tuple[str | None, ...]
    clients: Mapping[str, ClientStats] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "clients", MappingProxyType(dict(self.clients)))

    @classmethod
    def from_state(cls, state: TelemetryState) -> Snapshot:
        frozen = state.copy()
        return cls(
            tiles_x=frozen.tiles_x,
            tiles_y=frozen.tiles_y,
            tiles=tuple(frozen.tiles),
            clients=frozen.clients,
        )

    def to_state(self) -> TelemetryState:
        return TelemetryState(
            tiles_x=self.tiles_x,
            tiles_y=self.tiles_y,
            tiles=list(self.tiles),
            clients={cid: stats.copy() for cid, stats in self.clients.items()},
        )


@dataclass(frozen=True)
class BlitTile:
    """``client_id`` redrew ``tile`` in ``time`` seconds."""

    tile: int
    client_id: str
    time: float
    name: str | None = None


Payload = Union[Snapshot, BlitTile]


@dataclass(frozen=True)
class MetaEvent:
    ts: float
    payload: Payload


# ── Decoding ────────────────────────────────────────────────────────


@lru_cache(maxsize=1)
def _validator() -> jsonschema.Draft7Validator:
    with open(SCHEMA_PATH) as f:
        return jsonschema.Draft7Validator(json.load(f))


def _client_id(raw: int | str) -> str:
    # The render server numbers its connections; ids are strings from here on.
    return str(raw)


def _decode_snapshot(raw: dict) -> Snapshot:
    clients = {
        _client_id(cid): ClientStats(
            name=c.get("name") or UNKNOWN_NAME,
            average_time=float(c["average_time"]),
            current_count=int(c["current_count"]),
            total_count=int(c["total_count"]),
        )
        for cid, c in raw["clients"].items()
    }
    tiles = [None if t is None else _client_id(t) for t in raw["tiles"]]
    try:
        state = TelemetryState(
            tiles_x=int(raw["tiles_x"]),
            tiles_y=int(raw["tiles_y"]),
            tiles=tiles,
            clients=clients,
        )
    except ValueError as e:
        raise MalformedEventError(f"Bad snapshot grid: {e}") from e
    return Snapshot.from_state(state)


def _decode_blit(raw: dict) -> BlitTile:
    return BlitTile(
        tile=int(raw["tile"]),
        client_id=_client_id(raw["client_id"]),
        time=float(raw["time"]),
        name=raw.get("name"),
    )


def decode_event(raw: Any) -> MetaEvent:
    """Decode one wire event. Raises MalformedEventError on bad input."""
    try:
        _validator().validate(raw)
    except jsonschema.ValidationError as e:
        raise MalformedEventError(f"Schema validation: {e.message}") from e

    payload = raw["payload"]
    if "snapshot" in payload:
        return MetaEvent(ts=raw["ts"], payload=_decode_snapshot(payload["snapshot"]))
    return MetaEvent(ts=raw["ts"], payload=_decode_blit(payload["blitTile"]))


def decode_batch(raw_events: Any, source: str = "batch") -> list[MetaEvent]:
    """Decode a batch, dropping (and logging) individual malformed events."""
    if not isinstance(raw_events, list):
        raise MalformedEventError(
            f"{source}: expected a JSON array, got {type(raw_events).__name__}"
        )
    events = []
    for index, raw in enumerate(raw_events):
        try:
            events.append(decode_event(raw))
        except MalformedEventError as e:
            logger.warning("Skipping malformed event %d in %s: %s", index, source, e)
    return events


# ── Encoding ────────────────────────────────────────────────────────


def _encode_snapshot(snapshot: Snapshot) -> dict:
    return {
        "tiles": list(snapshot.tiles),
        "clients": {
            cid: {
                "current_count": stats.current_count,
                "total_count": stats.total_count,
                "average_time": stats.average_time,
                "name": stats.name,
            }
            for cid, stats in snapshot.clients.items()
        },
        "tiles_x": snapshot.tiles_x,
        "tiles_y": snapshot.tiles_y,
    }


def encode_event(event: MetaEvent) -> dict:
    """Serialise a MetaEvent to its wire shape."""
    if isinstance(event.payload, Snapshot):
        payload = {"snapshot": _encode_snapshot(event.payload)}
    else:
        blit = event.payload
        payload = {
            "blitTile": {
                "client_id": blit.client_id,
                "tile": blit.tile,
                "time": blit.time,
                "name": blit.name,
            }
        }
    return {"ts": event.ts, "payload": payload}
