"""SegmentRecorder: writes per-segment telemetry next to the video segments.

One metadata file per media segment: ``<segment>.json`` holds a JSON array
whose first event is a Snapshot of the state when the segment opened,
followed by every BlitTile recorded while it was open. A viewer joining at
any segment therefore resyncs from that segment's snapshot.

The recorder also keeps ``playlist.m3u8`` listing the finished segments,
dropping (and deleting metadata for) the oldest beyond ``max_segments``.
"""

from __future__ import annotations

import json
import logging
import time
from collections import deque
from pathlib import Path
from typing import Callable

from blitwatch.core.engine import apply_blit
from blitwatch.core.events import BlitTile, MetaEvent, Snapshot, encode_event
from blitwatch.core.state import TelemetryState

logger = logging.getLogger(__name__)


def _elapsed_ms_clock() -> Callable[[], float]:
    begin = time.monotonic()
    return lambda: int((time.monotonic() - begin) * 1000)


class SegmentRecorder:
    """Producer side of the segment feed."""

    def __init__(
        self,
        output_dir: Path,
        tiles_x: int,
        tiles_y: int,
        clock: Callable[[], float] | None = None,
        max_segments: int = 5,
        target_duration: int = 3,
        playlist: str = "playlist.m3u8",
    ):
        self._output_dir = Path(output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock or _elapsed_ms_clock()
        self._max_segments = max_segments
        self._target_duration = target_duration
        self._playlist_path = self._output_dir / playlist
        self._state = TelemetryState(tiles_x=tiles_x, tiles_y=tiles_y)
        self._events: list[MetaEvent] = []
        self._segment: str | None = None
        self._finished: deque[str] = deque()
        self._sequence = 0

    @property
    def state(self) -> TelemetryState:
        return self._state

    @property
    def playlist_path(self) -> Path:
        return self._playlist_path

    @property
    def current_segment(self) -> str | None:
        return self._segment

    def metadata_path(self, segment: str) -> Path:
        return self._output_dir / f"{segment}.json"

    def record_blit(
        self, client_id: str, tile: int, render_time: float, name: str | None = None
    ) -> MetaEvent:
        """Apply a finished tile and queue its event for the open segment.

        ``name`` is only carried on the event when it differs from the
        client's stored name.
        """
        known = self._state.clients.get(client_id)
        if name is not None and known is not None and known.name == name:
            name = None
        blit = BlitTile(tile=tile, client_id=client_id, time=render_time, name=name)
        apply_blit(self._state, blit)
        event = MetaEvent(ts=self._clock(), payload=blit)
        self._events.append(event)
        return event

    def start_segment(self, segment: str) -> None:
        """Close the open segment (if any) and open ``segment``."""
        self._flush()
        self._segment = segment
        self._events = [
            MetaEvent(ts=self._clock(), payload=Snapshot.from_state(self._state))
        ]

    def close(self) -> None:
        self._flush()
        self._segment = None
        self._events = []

    def _flush(self) -> None:
        if self._segment is None:
            return
        path = self.metadata_path(self._segment)
        path.write_text(json.dumps([encode_event(e) for e in self._events]))
        self._finished.append(self._segment)
        while len(self._finished) > self._max_segments:
            self._delete_segment(self._finished.popleft())
            self._sequence += 1
        self._write_playlist()

    def _delete_segment(self, segment: str) -> None:
        try:
            self.metadata_path(segment).unlink()
        except FileNotFoundError:
            logger.warning("Segment metadata already gone: %s", segment)

    def _write_playlist(self) -> None:
        lines = [
            "#EXTM3U",
            "#EXT-X-VERSION:3",
            f"#EXT-X-MEDIA-SEQUENCE:{self._sequence}",
            f"#EXT-X-TARGETDURATION:{self._target_duration}",
            "",
        ]
        for segment in self._finished:
            lines.append(f"#EXTINF:{self._target_duration:.3f},")
            lines.append(segment)
        self._playlist_path.write_text("\n".join(lines) + "\n")
