"""CLI entry point: python -m blitwatch [config.yaml]"""

import argparse
import logging
import sys
import threading
import time
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.live import Live
from rich.logging import RichHandler

from blitwatch.config import DashboardConfig, default_config, load_config, parse_pointer
from blitwatch.core.clock import ReplayClock, WallClockPlayback
from blitwatch.core.engine import ReconciliationEngine
from blitwatch.core.ingest import EventIngestor
from blitwatch.core.selection import SortKey, rank_clients, resolve
from blitwatch.dashboard import ReplayStatus, render
from blitwatch.feed import SegmentFeed

logger = logging.getLogger("blitwatch")


def _pointer_arg(raw: str) -> tuple[float, float]:
    try:
        return parse_pointer(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def run_dashboard(config: DashboardConfig, console: Console) -> None:
    """Feed thread ingests segments; this loop ticks and re-renders."""
    ingestor = EventIngestor()
    playback = WallClockPlayback()
    clock = ReplayClock(playback, skew=config.skew_ms)
    engine = ReconciliationEngine(ingestor, clock)
    feed = SegmentFeed(
        config.segments_dir,
        playlist=config.playlist,
        start_at_live_edge=config.start_at_live_edge,
    )
    highlight = config.highlight

    stop = threading.Event()
    feed_thread = threading.Thread(
        target=feed.run,
        args=(ingestor, stop, config.poll_interval),
        name="segment-feed",
        daemon=True,
    )

    def frame():
        if not playback.established:
            first_ts = ingestor.peek_ts()
            if first_ts is not None:
                playback.start(first_ts)
        engine.tick()
        state = engine.state
        ranked = rank_clients(state, config.sort_key)
        highlighted = resolve(state, highlight.pointer, highlight.rank, ranked)
        status = ReplayStatus(
            playback_ts=clock.now(),
            pending=ingestor.pending,
            applied=engine.applied_events,
            skipped=engine.skipped_events,
            discarded_batches=ingestor.discarded_batches,
            established=playback.established,
        )
        return render(state, ranked, highlighted, config.sort_key, status)

    feed_thread.start()
    with Live(frame(), console=console, refresh_per_second=4, screen=True) as live:
        try:
            while True:
                time.sleep(config.refresh_rate)
                live.update(frame())
        except KeyboardInterrupt:
            pass
        finally:
            stop.set()
    feed_thread.join(timeout=config.poll_interval + 1)


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(
        prog="blitwatch",
        description="Live tile ownership dashboard for a tile-rendering farm",
    )
    parser.add_argument(
        "config",
        type=Path,
        nargs="?",
        default=None,
        help="Path to dashboard YAML config file",
    )
    parser.add_argument(
        "-s", "--segments",
        type=Path,
        default=None,
        help="Directory holding playlist.m3u8 and segment metadata",
    )
    parser.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=None,
        help="Ranking column (default: total_count)",
    )
    parser.add_argument(
        "--rank",
        type=int,
        default=None,
        help="Highlight the client at this 0-based ranking row",
    )
    parser.add_argument(
        "--pointer",
        type=_pointer_arg,
        default=None,
        help="Highlight the owner of the tile under X,Y (normalised 0..1)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    args = parser.parse_args(argv)

    if args.config is not None and not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    config = load_config(args.config) if args.config else default_config()
    if args.segments:
        config.segments_dir = args.segments
    if args.sort:
        config.sort_key = SortKey(args.sort)
    if args.rank is not None:
        config.highlight.rank = args.rank
    if args.pointer is not None:
        config.highlight.pointer = args.pointer

    console = Console()
    logging.basicConfig(
        level=args.log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )

    console.print(f"[bold]Watching:[/bold] {config.segments_dir}")
    logger.info("Sorting by %s, skew %.0f ms", config.sort_key.value, config.skew_ms)
    run_dashboard(config, console)


if __name__ == "__main__":
    main()
