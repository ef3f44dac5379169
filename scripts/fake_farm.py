"""Simulated render farm writing segment telemetry for the dashboard.

Usage:
    python -m scripts.fake_farm [--out static/livevideo] [--workers 4] [--grid 8x6]

Each fake worker repeatedly claims a random tile and "renders" it in a
time drawn from its own speed. A SegmentRecorder rotates a segment every
``--segment-seconds`` so ``python -m blitwatch`` can follow along.
"""

from __future__ import annotations

import argparse
import random
import time
from dataclasses import dataclass
from pathlib import Path

from blitwatch.recorder import SegmentRecorder


@dataclass
class FakeWorker:
    client_id: str
    name: str
    mean_time: float
    busy_until: float = 0.0
    renames: int = 0


def parse_grid(raw: str) -> tuple[int, int]:
    x, y = raw.lower().split("x")
    return int(x), int(y)


def make_workers(count: int, rng: random.Random) -> list[FakeWorker]:
    return [
        FakeWorker(
            client_id=str(i),
            name=f"worker-{i}",
            mean_time=rng.uniform(0.05, 0.6),
        )
        for i in range(count)
    ]


def step(
    recorder: SegmentRecorder,
    workers: list[FakeWorker],
    rng: random.Random,
    now: float,
) -> int:
    """Finish every worker whose tile is due. Returns tiles blitted."""
    tile_count = recorder.state.tile_count
    blitted = 0
    for worker in workers:
        if now < worker.busy_until:
            continue
        render_time = max(0.01, rng.gauss(worker.mean_time, worker.mean_time / 4))
        # Occasionally a worker renames itself mid-session.
        if rng.random() < 0.002:
            worker.renames += 1
            worker.name = f"worker-{worker.client_id}.{worker.renames}"
        recorder.record_blit(worker.client_id, rng.randrange(tile_count), render_time, worker.name)
        worker.busy_until = now + render_time
        blitted += 1
    return blitted


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulated tile-rendering farm")
    parser.add_argument("--out", type=Path, default=Path("static/livevideo"))
    parser.add_argument("--workers", type=int, default=4)
    parser.add_argument("--grid", type=parse_grid, default=(8, 6))
    parser.add_argument("--segment-seconds", type=float, default=3.0)
    parser.add_argument("--duration", type=float, default=None, help="Stop after N seconds")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    rng = random.Random(args.seed)
    tiles_x, tiles_y = args.grid
    recorder = SegmentRecorder(
        args.out, tiles_x, tiles_y, target_duration=round(args.segment_seconds)
    )
    workers = make_workers(args.workers, rng)

    begin = time.monotonic()
    segment_index = 0
    next_segment_at = 0.0
    print(f"Writing telemetry to {args.out} ({tiles_x}x{tiles_y}, {len(workers)} workers)")
    try:
        while args.duration is None or time.monotonic() - begin < args.duration:
            now = time.monotonic() - begin
            if now >= next_segment_at:
                recorder.start_segment(f"segment{segment_index:05d}.ts")
                segment_index += 1
                next_segment_at += args.segment_seconds
            step(recorder, workers, rng, now)
            time.sleep(0.01)
    except KeyboardInterrupt:
        pass
    finally:
        recorder.close()


if __name__ == "__main__":
    main()
