"""Tests for SegmentRecorder: per-segment metadata files and playlist."""

import itertools
import json

import pytest

from blitwatch.core.events import decode_batch, BlitTile, Snapshot
from blitwatch.recorder import SegmentRecorder


@pytest.fixture
def recorder(tmp_path):
    ticks = itertools.count(start=0, step=10)
    return SegmentRecorder(tmp_path, tiles_x=2, tiles_y=2, clock=lambda: next(ticks), max_segments=2)


def _read(recorder, segment):
    return json.loads(recorder.metadata_path(segment).read_text())


class TestRecordBlit:
    def test_updates_own_state(self, recorder):
        recorder.record_blit("1", 3, 0.5, "gpu")
        assert recorder.state.tiles[3] == "1"
        assert recorder.state.clients["1"].name == "gpu"

    def test_name_only_sent_when_changed(self, recorder):
        first = recorder.record_blit("1", 0, 0.5, "gpu")
        again = recorder.record_blit("1", 1, 0.5, "gpu")
        renamed = recorder.record_blit("1", 2, 0.5, "gpu-2")
        assert first.payload.name == "gpu"
        assert again.payload.name is None
        assert renamed.payload.name == "gpu-2"

    def test_events_are_stamped(self, recorder):
        a = recorder.record_blit("1", 0, 0.5)
        b = recorder.record_blit("1", 1, 0.5)
        assert a.ts < b.ts


class TestSegments:
    def test_segment_starts_with_snapshot(self, recorder):
        recorder.record_blit("1", 0, 0.5, "gpu")
        recorder.start_segment("segment00000.ts")
        recorder.record_blit("2", 1, 0.25, "cpu")
        recorder.close()

        events = decode_batch(_read(recorder, "segment00000.ts"))
        assert isinstance(events[0].payload, Snapshot)
        assert events[0].payload.tiles == ("1", None, None, None)
        assert events[1].payload == BlitTile(tile=1, client_id="2", time=0.25, name="cpu")

    def test_metadata_written_when_next_segment_opens(self, recorder):
        recorder.start_segment("segment00000.ts")
        assert not recorder.metadata_path("segment00000.ts").exists()
        recorder.start_segment("segment00001.ts")
        assert recorder.metadata_path("segment00000.ts").exists()
        assert recorder.current_segment == "segment00001.ts"

    def test_playlist_lists_finished_segments(self, recorder):
        recorder.start_segment("segment00000.ts")
        recorder.start_segment("segment00001.ts")
        text = recorder.playlist_path.read_text()
        assert text.startswith("#EXTM3U")
        assert "segment00000.ts" in text
        assert "segment00001.ts" not in text

    def test_old_segments_rotate_out(self, recorder):
        for i in range(4):
            recorder.start_segment(f"segment{i:05d}.ts")
        recorder.close()
        assert not recorder.metadata_path("segment00000.ts").exists()
        assert not recorder.metadata_path("segment00001.ts").exists()
        assert recorder.metadata_path("segment00003.ts").exists()
        text = recorder.playlist_path.read_text()
        assert "#EXT-X-MEDIA-SEQUENCE:2" in text
        assert "segment00001.ts" not in text

    def test_timestamps_monotonic_across_segments(self, recorder):
        recorder.start_segment("segment00000.ts")
        recorder.record_blit("1", 0, 0.5)
        recorder.start_segment("segment00001.ts")
        recorder.record_blit("1", 1, 0.5)
        recorder.close()
        stamps = [e["ts"] for s in ("segment00000.ts", "segment00001.ts") for e in _read(recorder, s)]
        assert stamps == sorted(stamps)
