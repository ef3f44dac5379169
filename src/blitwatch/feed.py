"""SegmentFeed: fetches per-segment telemetry batches as segments appear.

Reads the HLS playlist, and for each listed segment not fetched yet loads
``<segment>.json`` and decodes it into one batch. The first poll can skip
straight to the newest segment, the way a player joins a live stream at the
live edge; that segment's leading snapshot supplies the state.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from blitwatch.core.events import MalformedEventError, MetaEvent, decode_batch
from blitwatch.core.ingest import EventIngestor

logger = logging.getLogger(__name__)


class SegmentFeed:
    def __init__(
        self,
        segments_dir: Path,
        playlist: str = "playlist.m3u8",
        start_at_live_edge: bool = True,
    ):
        self._segments_dir = Path(segments_dir)
        self._playlist_path = self._segments_dir / playlist
        self._start_at_live_edge = start_at_live_edge
        self._seen: set[str] = set()
        self._joined = False

    @property
    def seen(self) -> frozenset[str]:
        """Playlist entries already fetched or skipped."""
        return frozenset(self._seen)

    def segment_names(self) -> list[str]:
        """Segment URIs listed in the playlist, oldest first."""
        try:
            text = self._playlist_path.read_text()
        except FileNotFoundError:
            return []
        return [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.startswith("#")
        ]

    def poll(self) -> list[list[MetaEvent]]:
        """Decoded batches for segments that appeared since the last poll."""
        listed = self.segment_names()
        if listed:
            # Rotated-out segments never come back.
            self._seen.intersection_update(listed)
        names = [n for n in listed if n not in self._seen]
        if not names:
            return []
        if not self._joined:
            self._joined = True
            if self._start_at_live_edge:
                self._seen.update(names[:-1])
                names = names[-1:]

        batches = []
        for name in names:
            path = self._segments_dir / f"{name}.json"
            try:
                raw = json.loads(path.read_text())
            except FileNotFoundError:
                logger.debug("Metadata for %s not written yet", name)
                break
            except json.JSONDecodeError:
                logger.debug("Metadata for %s is incomplete, retrying", name)
                break

            self._seen.add(name)
            try:
                batches.append(decode_batch(raw, source=name))
            except MalformedEventError as e:
                logger.warning("Dropping segment %s: %s", name, e)
        return batches

    def run(
        self,
        ingestor: EventIngestor,
        stop: threading.Event,
        interval: float = 1.0,
    ) -> None:
        """Poll until ``stop`` is set, handing each batch to ``ingestor``."""
        while not stop.is_set():
            for batch in self.poll():
                if not ingestor.ingest(batch):
                    logger.info("Late batch of %d events dropped", len(batch))
            stop.wait(interval)
