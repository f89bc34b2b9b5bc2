# Storage Module
"""
In-memory store for supply-chain records. Every create and update is
written to the injected ledger.
"""

from .records import (
    Batch,
    Collection,
    HerbSpecies,
    ProcessingStep,
    Product,
    QualityTest,
    User,
)
from .memory import (
    DEMO_QR_CODE,
    DashboardStats,
    InvalidRecordError,
    MemStorage,
    RecordNotFoundError,
    StorageError,
    create_storage,
    seed_demo_data,
)

__all__ = [
    'Batch',
    'Collection',
    'DEMO_QR_CODE',
    'DashboardStats',
    'HerbSpecies',
    'InvalidRecordError',
    'MemStorage',
    'ProcessingStep',
    'Product',
    'QualityTest',
    'RecordNotFoundError',
    'StorageError',
    'User',
    'create_storage',
    'seed_demo_data',
]
