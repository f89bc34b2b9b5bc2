"""
Simulated Ledger

In-process stand-in for a blockchain:
- submit() records a pending transaction and schedules its confirmation
- Confirmation resolves each transaction once: confirmed (with gas) or failed
- Confirmed transactions are folded into hash-linked blocks once
  block_threshold of them accumulate
- Read-only queries return deep-copied snapshots

Every mutation and read runs under one re-entrant lock, so a ledger can
be shared with a ConfirmationWorker thread.

Author: AyuTrace Project
"""

import copy
import json
import logging
import random
import threading
from typing import Any, Callable, Iterable, List, Optional

from ..config import DEFAULT_CONFIG, MAX_NONCE, LedgerConfig, SubmissionPolicy
from ..contracts.validation import ValidationResult, has_contract, validate
from ..core.hashing import HashGenerator, RandomHashGenerator, create_hash_generator
from .models import (
    GENESIS_HEIGHT,
    GENESIS_PREV_HASH,
    Action,
    Block,
    EntityType,
    LedgerStats,
    Transaction,
    TransactionStatus,
)
from .scheduler import ConfirmationQueue, ManualClock, SystemClock


logger = logging.getLogger(__name__)

StatusListener = Callable[[Transaction], None]


# ============================================================================
# Errors
# ============================================================================

class LedgerError(Exception):
    """Base class for ledger errors."""
    pass


class ChainIntegrityError(LedgerError):
    """Raised when chain validation fails."""
    pass


class ContractViolationError(LedgerError):
    """Raised by submit() under SubmissionPolicy.ENFORCE for invalid payloads."""

    def __init__(self, entity_type: EntityType, result: ValidationResult):
        self.entity_type = entity_type
        self.result = result
        super().__init__(
            f"{entity_type.value} payload rejected: {'; '.join(result.errors)}"
        )


# ============================================================================
# Ledger
# ============================================================================

class Ledger:
    """
    Append-only transaction and block log with deferred confirmation.

    Example:
        >>> clock = ManualClock()
        >>> ledger = Ledger(clock=clock, rng=random.Random(7))
        >>> tx = ledger.submit("collection", "c-1", "create", {}, "user-1")
        >>> tx.status.value
        'pending'
        >>> clock.advance(3.0)
        3.0
        >>> ledger.run_pending()
        1
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        clock: Optional[Any] = None,
        hash_generator: Optional[HashGenerator] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize a ledger holding only the genesis block.

        Args:
            config: Simulation parameters (defaults to DEFAULT_CONFIG)
            clock: Object with now() -> seconds; SystemClock by default
            hash_generator: Identifier strategy; RandomHashGenerator by default
            rng: Random source for delays, failures, gas and nonces
        """
        self._config = config or DEFAULT_CONFIG
        self._clock = clock or SystemClock()
        self._rng = rng or random.Random()
        self._hasher = hash_generator or RandomHashGenerator(
            rng=self._rng, clock=self._clock.now
        )

        self._chain: List[Block] = []
        self._pool: List[Transaction] = []
        self._queue = ConfirmationQueue()
        self._listeners: List[StatusListener] = []
        self._lock = threading.RLock()

        self._create_genesis_block()

    def _create_genesis_block(self) -> None:
        timestamp = self._clock.now()
        merkle_root = self._hasher.merkle_root([])
        genesis = Block(
            height=GENESIS_HEIGHT,
            hash=self._hasher.block_hash(
                GENESIS_HEIGHT, GENESIS_PREV_HASH, merkle_root, timestamp, 0
            ),
            previous_hash=GENESIS_PREV_HASH,
            transactions=(),
            timestamp=timestamp,
            merkle_root=merkle_root,
            nonce=0,
        )
        self._chain.append(genesis)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def clock(self):
        return self._clock

    @property
    def length(self) -> int:
        with self._lock:
            return len(self._chain)

    @property
    def last_block(self) -> Block:
        with self._lock:
            return self._chain[-1].snapshot()

    @property
    def chain(self) -> List[Block]:
        """Snapshot of the chain, genesis first."""
        with self._lock:
            return [block.snapshot() for block in self._chain]

    @property
    def pending_transactions(self) -> List[Transaction]:
        """Snapshot of the pending pool in insertion order."""
        with self._lock:
            return [tx.snapshot() for tx in self._pool]

    @property
    def scheduled_confirmations(self) -> int:
        return len(self._queue)

    def next_confirmation_due(self) -> Optional[float]:
        return self._queue.next_due()

    # ========================================================================
    # Listeners
    # ========================================================================

    def add_listener(self, listener: StatusListener) -> None:
        """Notify listener with a snapshot whenever a transaction resolves."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, resolved: List[Transaction]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for tx in resolved:
            for listener in listeners:
                try:
                    listener(tx)
                except Exception:
                    logger.exception("Status listener failed for %s", tx.tx_id)

    # ========================================================================
    # Submission
    # ========================================================================

    def validate(self, entity_type: Any, payload: Any) -> ValidationResult:
        """Pre-submission contract check; never touches ledger state."""
        return validate(entity_type, payload)

    def submit(
        self,
        entity_type: Any,
        entity_id: str,
        action: Any,
        payload: Any,
        user_id: str
    ) -> Transaction:
        """
        Record a pending transaction and schedule its confirmation.

        Returns immediately; re-query with get_transaction() for the
        final status.

        Args:
            entity_type: EntityType or its string value
            entity_id: Identifier of the supply-chain record
            action: Action or its string value ("create"/"update")
            payload: Snapshot of the record (deep-copied)
            user_id: Submitting user

        Returns:
            Snapshot of the pending transaction

        Raises:
            ValueError: If entity_type or action is unknown
            ContractViolationError: Under ENFORCE, for an invalid payload
        """
        entity_type = EntityType(entity_type)
        action = Action(action)

        if (self._config.submission_policy is SubmissionPolicy.ENFORCE
                and has_contract(entity_type)):
            result = validate(entity_type, payload)
            if not result.is_valid:
                logger.info(
                    "Rejected %s %s: %s",
                    entity_type.value, entity_id, ", ".join(result.errors)
                )
                raise ContractViolationError(entity_type, result)

        with self._lock:
            now = self._clock.now()
            tx = Transaction(
                id=self._hasher.correlation_id(),
                tx_id=self._hasher.transaction_id(),
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                payload=copy.deepcopy(payload),
                timestamp=now,
                user_id=user_id,
            )
            self._pool.append(tx)

            delay = self._rng.uniform(
                self._config.min_confirmation_delay,
                self._config.max_confirmation_delay,
            )
            self._queue.schedule(tx.tx_id, now + delay)
            logger.debug(
                "Submitted %s (%s %s:%s), confirmation in %.2fs",
                tx.tx_id, action.value, entity_type.value, entity_id, delay
            )
            return tx.snapshot()

    # ========================================================================
    # Confirmation
    # ========================================================================

    def run_pending(self, now: Optional[float] = None) -> int:
        """
        Apply every confirmation job due at or before now.

        Args:
            now: Reference time; the ledger clock's current time by default

        Returns:
            Number of jobs applied
        """
        resolved = []
        with self._lock:
            if now is None:
                now = self._clock.now()
            jobs = self._queue.pop_due(now)
            for job in jobs:
                tx = self._confirm(job.tx_id)
                if tx is not None:
                    resolved.append(tx)
            snapshots = [tx.snapshot() for tx in resolved]
        self._notify(snapshots)
        return len(jobs)

    def settle(self) -> int:
        """
        Advance a ManualClock through every scheduled job and apply them.

        Returns:
            Number of jobs applied

        Raises:
            LedgerError: If the ledger is not driven by a ManualClock
        """
        if not isinstance(self._clock, ManualClock):
            raise LedgerError("settle() requires a ManualClock")
        applied = 0
        while True:
            due = self._queue.next_due()
            if due is None:
                return applied
            if due > self._clock.now():
                self._clock.set(due)
            applied += self.run_pending()

    def _confirm(self, tx_id: str) -> Optional[Transaction]:
        tx = self._find_in_pool(tx_id)
        if tx is None or tx.is_terminal:
            logger.warning("Confirmation skipped for %s: not pending", tx_id)
            return None

        if self._rng.random() < self._config.failure_rate:
            tx.status = TransactionStatus.FAILED
            logger.info("Transaction %s failed", tx.tx_id)
            return tx

        tx.status = TransactionStatus.CONFIRMED
        tx.gas_used = self._rng.randrange(
            self._config.min_gas, self._config.min_gas + self._config.gas_spread
        )
        logger.info("Transaction %s confirmed (gas %d)", tx.tx_id, tx.gas_used)

        if len(self._unblocked_confirmed()) >= self._config.block_threshold:
            self._assemble()
        return tx

    def _find_in_pool(self, tx_id: str) -> Optional[Transaction]:
        for tx in self._pool:
            if tx.tx_id == tx_id:
                return tx
        return None

    def _unblocked_confirmed(self) -> List[Transaction]:
        return [
            tx for tx in self._pool
            if tx.status is TransactionStatus.CONFIRMED and tx.block_height is None
        ]

    # ========================================================================
    # Block Assembly
    # ========================================================================

    def assemble(self) -> Optional[Block]:
        """
        Fold every confirmed, unblocked transaction into a new block.

        Returns:
            Snapshot of the new block, or None if nothing was confirmed
        """
        with self._lock:
            block = self._assemble()
            return block.snapshot() if block else None

    def _assemble(self) -> Optional[Block]:
        confirmed = self._unblocked_confirmed()
        if not confirmed:
            return None

        prev_block = self._chain[-1]
        height = len(self._chain)
        timestamp = self._clock.now()
        merkle_root = self._hasher.merkle_root([tx.tx_id for tx in confirmed])
        nonce = self._rng.randrange(MAX_NONCE)
        block_hash = self._hasher.block_hash(
            height, prev_block.hash, merkle_root, timestamp, nonce
        )

        for tx in confirmed:
            tx.block_height = height

        block = Block(
            height=height,
            hash=block_hash,
            previous_hash=prev_block.hash,
            transactions=tuple(confirmed),
            timestamp=timestamp,
            merkle_root=merkle_root,
            nonce=nonce,
        )
        self._chain.append(block)

        included = {tx.tx_id for tx in confirmed}
        self._pool = [tx for tx in self._pool if tx.tx_id not in included]

        logger.info("Assembled block #%d with %d transactions", height, len(confirmed))
        return block

    # ========================================================================
    # Queries
    # ========================================================================

    def get_transaction(self, tx_id: str) -> Optional[Transaction]:
        """Look up a transaction in the pool, then in blocks oldest first."""
        with self._lock:
            tx = self._find_in_pool(tx_id)
            if tx is None:
                tx = next(
                    (t for block in self._chain for t in block.transactions
                     if t.tx_id == tx_id),
                    None,
                )
            return tx.snapshot() if tx else None

    def get_transactions_by_entity(self, entity_id: str) -> List[Transaction]:
        """All transactions for an entity, most recent first."""
        with self._lock:
            return _newest_first(
                tx for tx in self._all_transactions() if tx.entity_id == entity_id
            )

    def get_all_transactions(self) -> List[Transaction]:
        """Pool and block transactions, most recent first."""
        with self._lock:
            return _newest_first(self._all_transactions())

    def get_block(self, height: int) -> Optional[Block]:
        with self._lock:
            for block in self._chain:
                if block.height == height:
                    return block.snapshot()
            return None

    def get_latest_blocks(self, count: int = 10) -> List[Block]:
        """The last count blocks, newest first."""
        if count <= 0:
            return []
        with self._lock:
            return [block.snapshot() for block in reversed(self._chain[-count:])]

    def get_stats(self) -> LedgerStats:
        with self._lock:
            transactions = self._all_transactions()
            tail = self._chain[-1]
            return LedgerStats(
                total_blocks=len(self._chain),
                total_transactions=len(transactions),
                confirmed_transactions=sum(
                    1 for tx in transactions if tx.status is TransactionStatus.CONFIRMED
                ),
                pending_transactions=len(self._pool),
                failed_transactions=sum(
                    1 for tx in transactions if tx.status is TransactionStatus.FAILED
                ),
                current_block_height=tail.height,
                last_block_time=tail.timestamp,
            )

    def _all_transactions(self) -> List[Transaction]:
        transactions = list(self._pool)
        for block in self._chain:
            transactions.extend(block.transactions)
        return transactions

    # ========================================================================
    # Integrity
    # ========================================================================

    def validate_chain(self) -> bool:
        """
        Validate the entire chain and the pool.

        Returns:
            True if the chain is valid

        Raises:
            ChainIntegrityError: On the first inconsistency found
        """
        with self._lock:
            genesis = self._chain[0]
            if (genesis.height != GENESIS_HEIGHT
                    or genesis.previous_hash != GENESIS_PREV_HASH
                    or genesis.transactions):
                raise ChainIntegrityError("Invalid genesis block")
            self._verify_digests(genesis)

            for prev_block, block in zip(self._chain, self._chain[1:]):
                self._validate_block(block, prev_block)

            for tx in self._pool:
                if tx.block_height is not None:
                    raise ChainIntegrityError(
                        f"Pooled transaction {tx.tx_id} claims block #{tx.block_height}"
                    )
            return True

    def _validate_block(self, block: Block, prev_block: Block) -> None:
        if block.height != prev_block.height + 1:
            raise ChainIntegrityError(
                f"Invalid height: expected {prev_block.height + 1}, got {block.height}"
            )
        if block.previous_hash != prev_block.hash:
            raise ChainIntegrityError(f"Previous hash mismatch at block #{block.height}")
        if not block.transactions:
            raise ChainIntegrityError(f"Block #{block.height} has no transactions")
        for tx in block.transactions:
            if tx.status is not TransactionStatus.CONFIRMED:
                raise ChainIntegrityError(
                    f"Block #{block.height} holds {tx.status.value} transaction {tx.tx_id}"
                )
            if tx.block_height != block.height:
                raise ChainIntegrityError(
                    f"Transaction {tx.tx_id} claims block #{tx.block_height}, "
                    f"found in #{block.height}"
                )
        self._verify_digests(block)

    def _verify_digests(self, block: Block) -> None:
        # Random identifiers cannot be recomputed
        if not self._hasher.deterministic:
            return
        if self._hasher.merkle_root(block.tx_ids) != block.merkle_root:
            raise ChainIntegrityError(f"Merkle root mismatch at block #{block.height}")
        expected = self._hasher.block_hash(
            block.height, block.previous_hash, block.merkle_root,
            block.timestamp, block.nonce
        )
        if expected != block.hash:
            raise ChainIntegrityError(f"Block hash mismatch at block #{block.height}")

    # ========================================================================
    # Export
    # ========================================================================

    def to_json(self) -> str:
        """Export chain and pool as JSON (inspection only)."""
        with self._lock:
            return json.dumps({
                'block_threshold': self._config.block_threshold,
                'chain': [block.to_dict() for block in self._chain],
                'pending': [tx.to_dict() for tx in self._pool],
            }, indent=2, default=str)

    def print_chain(self) -> None:
        """Print the blockchain."""
        with self._lock:
            print(f"\nLedger (blocks={len(self._chain)}, pool={len(self._pool)})")
            print("=" * 60)
            for block in self._chain:
                print(block)
                for tx in block.transactions:
                    print(f"    {tx}")
                print("-" * 40)
            for tx in self._pool:
                print(f"  pool: {tx}")


# ============================================================================
# Helpers
# ============================================================================

def _newest_first(transactions: Iterable[Transaction]) -> List[Transaction]:
    # sorted() is stable, so equal timestamps keep pool-then-chain order
    ordered = sorted(transactions, key=lambda tx: tx.timestamp, reverse=True)
    return [tx.snapshot() for tx in ordered]


# ============================================================================
# Convenience Functions
# ============================================================================

def create_ledger(
    config: Optional[LedgerConfig] = None,
    clock: Optional[Any] = None,
    hash_strategy: str = "random",
    seed: Optional[int] = None
) -> Ledger:
    """
    Create a ledger with its own random source.

    Args:
        config: Simulation parameters
        clock: Time source (SystemClock by default)
        hash_strategy: "random" or "content"
        seed: Seed for reproducible runs

    Returns:
        A ledger holding only the genesis block
    """
    rng = random.Random(seed)
    clock = clock or SystemClock()
    hasher = create_hash_generator(hash_strategy, rng=rng, clock=clock.now)
    return Ledger(config=config, clock=clock, hash_generator=hasher, rng=rng)
