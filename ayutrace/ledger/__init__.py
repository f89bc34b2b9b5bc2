# Ledger Module
"""
Simulated blockchain ledger including:
- Pending pool with deferred, randomized confirmation
- Hash-linked, immutable blocks assembled from confirmed transactions
- Read-only traceability queries and aggregate stats

Out of scope:
- Real hashing guarantees, signatures, consensus, persistence
"""

from .models import (
    GENESIS_PREV_HASH,
    Action,
    Block,
    EntityType,
    LedgerStats,
    Transaction,
    TransactionStatus,
)
from .scheduler import (
    ConfirmationQueue,
    ConfirmationWorker,
    ManualClock,
    SystemClock,
)
from .ledger import (
    ChainIntegrityError,
    ContractViolationError,
    Ledger,
    LedgerError,
    create_ledger,
)

__all__ = [
    'GENESIS_PREV_HASH',
    'Action',
    'Block',
    'ChainIntegrityError',
    'ConfirmationQueue',
    'ConfirmationWorker',
    'ContractViolationError',
    'EntityType',
    'Ledger',
    'LedgerError',
    'LedgerStats',
    'ManualClock',
    'SystemClock',
    'Transaction',
    'TransactionStatus',
    'create_ledger',
]
