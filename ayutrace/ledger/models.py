"""
Ledger Data Model

Transactions move pending -> confirmed or pending -> failed and are then
folded into immutable blocks. Everything the ledger hands out is a deep
copy (see snapshot()), so callers cannot reach ledger-owned state.

Author: AyuTrace Project
"""

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ============================================================================
# Constants
# ============================================================================

GENESIS_PREV_HASH = "0"  # Sentinel previous-hash of the genesis block
GENESIS_HEIGHT = 0


# ============================================================================
# Enumerations
# ============================================================================

class EntityType(Enum):
    """Supply-chain records that can be written to the ledger."""
    COLLECTION = "collection"
    BATCH = "batch"
    PROCESSING = "processing"
    TEST = "test"
    PRODUCT = "product"


class Action(Enum):
    CREATE = "create"
    UPDATE = "update"


class TransactionStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


# ============================================================================
# Transaction
# ============================================================================

@dataclass
class Transaction:
    """
    A recorded intent to create or update one supply-chain record.

    Only the ledger mutates status, block_height and gas_used.
    """
    id: str                       # Correlation id (UUID4)
    tx_id: str                    # Transaction identifier
    entity_type: EntityType
    entity_id: str
    action: Action
    payload: Any                  # Record snapshot at submission time
    timestamp: float              # Seconds since epoch (ledger clock)
    user_id: str
    status: TransactionStatus = TransactionStatus.PENDING
    block_height: Optional[int] = None
    gas_used: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TransactionStatus.PENDING

    @property
    def in_block(self) -> bool:
        return self.block_height is not None

    def snapshot(self) -> 'Transaction':
        """Return a deep copy safe to hand to callers."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert transaction to a JSON-compatible dictionary."""
        return {
            'id': self.id,
            'tx_id': self.tx_id,
            'entity_type': self.entity_type.value,
            'entity_id': self.entity_id,
            'action': self.action.value,
            'payload': self.payload,
            'timestamp': self.timestamp,
            'iso_time': _iso(self.timestamp),
            'user_id': self.user_id,
            'status': self.status.value,
            'block_height': self.block_height,
            'gas_used': self.gas_used,
        }

    def __str__(self) -> str:
        where = f"block #{self.block_height}" if self.in_block else "pool"
        return (
            f"{self.tx_id} [{self.status.value}] "
            f"{self.action.value} {self.entity_type.value}:{self.entity_id} ({where})"
        )


# ============================================================================
# Block Structure (Immutable)
# ============================================================================

@dataclass(frozen=True)
class Block:
    """
    Immutable block of confirmed transactions.

    frozen=True keeps height, hashes and the transaction tuple fixed once
    the block is appended to the chain.
    """
    height: int
    hash: str
    previous_hash: str
    transactions: Tuple[Transaction, ...]
    timestamp: float
    merkle_root: str
    nonce: int

    @property
    def is_genesis(self) -> bool:
        return self.height == GENESIS_HEIGHT

    @property
    def tx_ids(self) -> Tuple[str, ...]:
        return tuple(tx.tx_id for tx in self.transactions)

    def snapshot(self) -> 'Block':
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert block to dictionary for serialization."""
        return {
            'height': self.height,
            'hash': self.hash,
            'previous_hash': self.previous_hash,
            'transactions': [tx.to_dict() for tx in self.transactions],
            'timestamp': self.timestamp,
            'iso_time': _iso(self.timestamp),
            'merkle_root': self.merkle_root,
            'nonce': self.nonce,
        }

    def __str__(self) -> str:
        return (
            f"Block #{self.height}\n"
            f"  Hash: {self.hash[:32]}\n"
            f"  Prev: {self.previous_hash[:32]}\n"
            f"  Merkle: {self.merkle_root[:32]}\n"
            f"  Nonce: {self.nonce}\n"
            f"  Transactions: {len(self.transactions)}"
        )


# ============================================================================
# Stats
# ============================================================================

@dataclass(frozen=True)
class LedgerStats:
    """Aggregate counters returned by Ledger.get_stats()."""
    total_blocks: int
    total_transactions: int
    confirmed_transactions: int
    pending_transactions: int     # Pool size, failed transactions included
    failed_transactions: int
    current_block_height: int
    last_block_time: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_blocks': self.total_blocks,
            'total_transactions': self.total_transactions,
            'confirmed_transactions': self.confirmed_transactions,
            'pending_transactions': self.pending_transactions,
            'failed_transactions': self.failed_transactions,
            'current_block_height': self.current_block_height,
            'last_block_time': self.last_block_time,
        }
