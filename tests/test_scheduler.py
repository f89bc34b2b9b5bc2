"""
Tests for clocks, the confirmation queue and the background worker.
"""

import time

import pytest

from ayutrace.config import LedgerConfig
from ayutrace.ledger import (
    ConfirmationQueue,
    ConfirmationWorker,
    ManualClock,
    SystemClock,
    TransactionStatus,
    create_ledger,
)


class TestManualClock:
    """Tests for the virtual clock."""

    def test_starts_where_told(self):
        assert ManualClock(start=50.0).now() == 50.0

    def test_advance(self):
        clock = ManualClock(start=10.0)
        assert clock.advance(2.5) == 12.5
        assert clock() == 12.5

    def test_cannot_go_backwards(self):
        clock = ManualClock(start=10.0)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(5.0)

    def test_system_clock_tracks_wall_time(self):
        before = time.time()
        assert SystemClock().now() >= before


class TestConfirmationQueue:
    """Tests for job ordering."""

    def test_pops_in_due_order(self):
        queue = ConfirmationQueue()
        queue.schedule("tx_b", 2.0)
        queue.schedule("tx_a", 1.0)
        queue.schedule("tx_c", 3.0)

        assert [job.tx_id for job in queue.pop_due(2.5)] == ["tx_a", "tx_b"]
        assert len(queue) == 1
        assert queue.next_due() == 3.0

    def test_ties_keep_submission_order(self):
        queue = ConfirmationQueue()
        for tx_id in ("tx_1", "tx_2", "tx_3"):
            queue.schedule(tx_id, 1.0)

        assert [job.tx_id for job in queue.pop_due(1.0)] == ["tx_1", "tx_2", "tx_3"]

    def test_jobs_pop_once(self):
        queue = ConfirmationQueue()
        queue.schedule("tx_1", 1.0)

        assert len(queue.pop_due(5.0)) == 1
        assert queue.pop_due(5.0) == []
        assert queue.next_due() is None


class TestConfirmationWorker:
    """Tests for the wall-clock worker thread."""

    def test_rejects_bad_poll_interval(self):
        ledger = create_ledger(seed=1)
        with pytest.raises(ValueError):
            ConfirmationWorker(ledger, poll_interval=0)

    def test_confirms_in_background(self):
        config = LedgerConfig(
            failure_rate=0.0,
            min_confirmation_delay=0.0,
            max_confirmation_delay=0.05,
        )
        ledger = create_ledger(config=config, seed=3)

        with ConfirmationWorker(ledger, poll_interval=0.01) as worker:
            assert worker.running
            txs = [
                ledger.submit("test", f"t-{i}", "create",
                              {'test_type': 'purity', 'result': 'pass'}, "lab-1")
                for i in range(6)
            ]
            deadline = time.time() + 2.0
            while ledger.scheduled_confirmations and time.time() < deadline:
                time.sleep(0.01)

        assert not worker.running
        assert all(
            ledger.get_transaction(tx.tx_id).status is TransactionStatus.CONFIRMED
            for tx in txs
        )
        assert ledger.length == 2
