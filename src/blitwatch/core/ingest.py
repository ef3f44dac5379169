"""EventIngestor: ordered, all-or-nothing admission of event batches.

A batch is accepted only if its timestamps are non-decreasing and it does
not start before the tail of the pending queue. Anything else is a late or
reordered batch and is dropped whole, never partially merged.

The pending queue is the one resource shared between the feed thread
(appending) and the refresh loop (draining), so every mutation holds the lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Sequence

from blitwatch.core.events import MetaEvent

logger = logging.getLogger(__name__)


def is_monotonic(batch: Sequence[MetaEvent]) -> bool:
    return all(a.ts <= b.ts for a, b in zip(batch, batch[1:]))


class EventIngestor:
    """Owns the pending queue of not-yet-applied events."""

    def __init__(self) -> None:
        self._pending: deque[MetaEvent] = deque()
        self._lock = threading.Lock()
        self.accepted_batches = 0
        self.discarded_batches = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def pending(self) -> int:
        return len(self)

    def ingest(self, batch: Sequence[MetaEvent]) -> bool:
        """Append ``batch`` to the queue. Returns False if it was discarded."""
        batch = list(batch)
        if not batch:
            return True

        with self._lock:
            if not is_monotonic(batch):
                reason = "timestamps go backwards within the batch"
            elif self._pending and self._pending[-1].ts > batch[0].ts:
                reason = f"starts at {batch[0].ts} before queued tail {self._pending[-1].ts}"
            else:
                self._pending.extend(batch)
                self.accepted_batches += 1
                return True
            self.discarded_batches += 1

        logger.debug("Discarding batch of %d events: %s", len(batch), reason)
        return False

    def peek_ts(self) -> float | None:
        with self._lock:
            return self._pending[0].ts if self._pending else None

    def pop_due(self, now: float) -> MetaEvent | None:
        """Pop the front event if its timestamp is at or before ``now``."""
        with self._lock:
            if self._pending and self._pending[0].ts <= now:
                return self._pending.popleft()
            return None
