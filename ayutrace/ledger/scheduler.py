"""
Confirmation Scheduling

Deferred confirmation for submitted transactions:
- Clocks: SystemClock (wall time) and ManualClock (virtual time)
- ConfirmationQueue: heap of one-shot jobs ordered by due time
- ConfirmationWorker: optional background thread draining due jobs

The queue only orders jobs. Applying them is the ledger's job
(Ledger.run_pending), which serializes every state change under its lock.

Author: AyuTrace Project
"""

import heapq
import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger import Ledger


logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.25  # Seconds between worker wake-ups at most


# ============================================================================
# Clocks
# ============================================================================

class SystemClock:
    """Wall-clock time in seconds since epoch."""

    def now(self) -> float:
        return time.time()

    def __call__(self) -> float:
        return self.now()


class ManualClock:
    """
    Virtual clock that only moves when told to.

    Example:
        >>> clock = ManualClock(start=100.0)
        >>> clock.advance(2.5)
        102.5
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        with self._lock:
            return self._now

    def __call__(self) -> float:
        return self.now()

    def advance(self, seconds: float) -> float:
        """Move time forward and return the new time."""
        if seconds < 0:
            raise ValueError("Time cannot move backwards")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: float) -> float:
        with self._lock:
            if timestamp < self._now:
                raise ValueError("Time cannot move backwards")
            self._now = float(timestamp)
            return self._now


# ============================================================================
# Job Queue
# ============================================================================

@dataclass(order=True)
class ConfirmationJob:
    due: float
    sequence: int
    tx_id: str = field(compare=False)


class ConfirmationQueue:
    """
    One-shot confirmation jobs, earliest due first.

    Jobs with equal due times come out in submission order. A popped job
    is gone for good, so each transaction is confirmed at most once.
    """

    def __init__(self):
        self._heap: List[ConfirmationJob] = []
        self._sequence = itertools.count()
        self._lock = threading.Lock()

    def schedule(self, tx_id: str, due: float) -> ConfirmationJob:
        job = ConfirmationJob(due=due, sequence=next(self._sequence), tx_id=tx_id)
        with self._lock:
            heapq.heappush(self._heap, job)
        return job

    def pop_due(self, now: float) -> List[ConfirmationJob]:
        """Remove and return every job due at or before now."""
        due = []
        with self._lock:
            while self._heap and self._heap[0].due <= now:
                due.append(heapq.heappop(self._heap))
        return due

    def next_due(self) -> Optional[float]:
        with self._lock:
            return self._heap[0].due if self._heap else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)


# ============================================================================
# Background Worker
# ============================================================================

class ConfirmationWorker:
    """
    Daemon thread that keeps a ledger's confirmations flowing.

    Sleeps until the next job is due (never longer than poll_interval)
    and then calls ledger.run_pending(). Intended for wall-clock use;
    tests drive run_pending() directly with a ManualClock.

    Example:
        >>> with ConfirmationWorker(ledger):
        ...     ledger.submit("collection", "c-1", "create", {}, "user-1")
    """

    def __init__(self, ledger: 'Ledger', poll_interval: float = DEFAULT_POLL_INTERVAL):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._ledger = ledger
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="ayutrace-confirmations", daemon=True
        )
        self._thread.start()
        logger.info("Confirmation worker started")

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Confirmation worker stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            self._ledger.run_pending()
            self._stop.wait(self._sleep_time())

    def _sleep_time(self) -> float:
        next_due = self._ledger.next_confirmation_due()
        if next_due is None:
            return self._poll_interval
        wait = next_due - self._ledger.clock.now()
        return min(max(wait, 0.0), self._poll_interval)

    def __enter__(self) -> 'ConfirmationWorker':
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
