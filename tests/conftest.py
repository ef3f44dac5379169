"""Shared test fixtures for blitwatch."""

import pytest

from blitwatch.core.clock import ReplayClock
from blitwatch.core.engine import ReconciliationEngine
from blitwatch.core.ingest import EventIngestor


class ManualPlayback:
    """Playback source whose position the test sets directly."""

    def __init__(self, position: float | None = None):
        self.position = position

    def live_timestamp(self) -> float | None:
        return self.position


@pytest.fixture
def playback():
    return ManualPlayback()


@pytest.fixture
def ingestor():
    return EventIngestor()


@pytest.fixture
def engine(ingestor, playback):
    """Engine with zero skew so the playback position is the replay time."""
    return ReconciliationEngine(ingestor, ReplayClock(playback, skew=0))
