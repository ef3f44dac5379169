"""ReplayClock: the playback instant that gates which events are due.

Events are stamped when a tile is blitted, but the frame showing that blit
is painted later. ``SKEW_MS`` moves the clock forward by a fixed amount so
the overlay lines up with the picture.
"""

from __future__ import annotations

import time
from typing import Callable, Protocol

SKEW_MS = 500.0


class PlaybackSource(Protocol):
    """Read-only view of the media player's position."""

    def live_timestamp(self) -> float | None:
        """Current live position in event-timestamp units, or None if unknown."""
        ...


class WallClockPlayback:
    """Playback that advances in real time from the moment it is started.

    Stands in for a video player: ``start(at_ts)`` is the equivalent of the
    player reporting its first decoded frame.
    """

    def __init__(self, monotonic: Callable[[], float] = time.monotonic):
        self._monotonic = monotonic
        self._anchor_ts: float | None = None
        self._anchor_at = 0.0

    @property
    def established(self) -> bool:
        return self._anchor_ts is not None

    def start(self, at_ts: float) -> None:
        self._anchor_ts = at_ts
        self._anchor_at = self._monotonic()

    def live_timestamp(self) -> float | None:
        if self._anchor_ts is None:
            return None
        elapsed_ms = (self._monotonic() - self._anchor_at) * 1000.0
        return self._anchor_ts + elapsed_ms


class ReplayClock:
    def __init__(self, source: PlaybackSource, skew: float = SKEW_MS):
        self._source = source
        self.skew = skew

    def now(self) -> float:
        live = self._source.live_timestamp()
        if live is None:
            return 0
        return live + self.skew
