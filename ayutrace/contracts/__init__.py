# Contracts Module
"""
Simulated smart contracts: per-entity-type required-field checks and
gas estimates. Advisory unless the ledger runs with
SubmissionPolicy.ENFORCE.
"""

from .validation import (
    BASE_GAS,
    CONTRACTS,
    ValidationResult,
    has_contract,
    resolve_contract,
    validate,
)

__all__ = [
    'BASE_GAS',
    'CONTRACTS',
    'ValidationResult',
    'has_contract',
    'resolve_contract',
    'validate',
]
