"""Telemetry replay core: events, state, ingestion, clock, engine, selection."""

from .clock import SKEW_MS, PlaybackSource, ReplayClock, WallClockPlayback
from .engine import ReconciliationEngine, apply_blit, apply_event
from .events import (
    BlitTile,
    EventApplyError,
    MalformedEventError,
    MetaEvent,
    Snapshot,
    decode_batch,
    decode_event,
    encode_event,
)
from .ingest import EventIngestor
from .selection import SortKey, rank_clients, resolve
from .state import UNKNOWN_NAME, ClientStats, TelemetryState

__all__ = [
    "SKEW_MS",
    "UNKNOWN_NAME",
    "BlitTile",
    "ClientStats",
    "EventApplyError",
    "EventIngestor",
    "MalformedEventError",
    "MetaEvent",
    "PlaybackSource",
    "ReconciliationEngine",
    "ReplayClock",
    "Snapshot",
    "SortKey",
    "TelemetryState",
    "WallClockPlayback",
    "apply_blit",
    "apply_event",
    "decode_batch",
    "decode_event",
    "encode_event",
    "rank_clients",
    "resolve",
]
