"""
Smart Contract Validation

Entity-type-specific required-field checks and gas estimation.

validate() is pure: it never touches ledger state and never raises for
a bad payload. Failures come back as a ValidationResult. Whether the
ledger acts on the result is decided by its SubmissionPolicy.

Author: AyuTrace Project
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple


# ============================================================================
# Constants
# ============================================================================

BASE_GAS = 50000

COLLECTION_CONTRACT = "collection"
PROCESSING_CONTRACT = "processing"
QUALITY_TEST_CONTRACT = "quality_test"
PRODUCT_CONTRACT = "product"

UNKNOWN_CONTRACT_ERROR = "Unknown contract type"
NOT_A_MAPPING_ERROR = "Payload must be an object"

# The ledger records quality tests under the "test" entity type
CONTRACT_ALIASES = {
    "test": QUALITY_TEST_CONTRACT,
}


# ============================================================================
# Result
# ============================================================================

@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a contract check."""
    is_valid: bool
    errors: Tuple[str, ...] = field(default_factory=tuple)
    estimated_cost: int = BASE_GAS

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_valid': self.is_valid,
            'errors': list(self.errors),
            'estimated_cost': self.estimated_cost,
        }


# ============================================================================
# Field Helpers
# ============================================================================

def _present(payload: Mapping[str, Any], key: str) -> bool:
    """A field is present when set to something other than None or ''."""
    value = payload.get(key)
    return value is not None and value != ""


def _positive_number(value: Any) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return Decimal(str(value)) > 0
    except (InvalidOperation, ValueError):
        return False


# ============================================================================
# Rules
# ============================================================================

def _check_collection(payload: Mapping[str, Any]) -> List[str]:
    errors = []
    if not (_present(payload, 'latitude') and _present(payload, 'longitude')):
        errors.append("GPS coordinates required")
    if not _present(payload, 'species_id'):
        errors.append("Species identification required")
    if not _positive_number(payload.get('quantity')):
        errors.append("Valid quantity required")
    return errors


def _check_processing(payload: Mapping[str, Any]) -> List[str]:
    errors = []
    if not _present(payload, 'batch_id'):
        errors.append("Batch ID required")
    if not _present(payload, 'step_type'):
        errors.append("Processing step type required")
    return errors


def _check_quality_test(payload: Mapping[str, Any]) -> List[str]:
    errors = []
    if not _present(payload, 'test_type'):
        errors.append("Test type required")
    if not _present(payload, 'result'):
        errors.append("Test result required")
    return errors


def _check_product(payload: Mapping[str, Any]) -> List[str]:
    errors = []
    if not _present(payload, 'name'):
        errors.append("Product name required")
    if not payload.get('batch_ids'):
        errors.append("At least one batch required")
    return errors


# contract type -> (rule, gas added on top of BASE_GAS)
CONTRACTS: Dict[str, Tuple[Callable[[Mapping[str, Any]], List[str]], int]] = {
    COLLECTION_CONTRACT: (_check_collection, 25000),
    PROCESSING_CONTRACT: (_check_processing, 35000),
    QUALITY_TEST_CONTRACT: (_check_quality_test, 40000),
    PRODUCT_CONTRACT: (_check_product, 60000),
}


def resolve_contract(entity_type: Any) -> Optional[str]:
    """
    Map an entity type (enum or string) to its contract name.

    Returns:
        The contract name, or None when no contract covers the type
    """
    name = getattr(entity_type, 'value', entity_type)
    if not isinstance(name, str):
        return None
    name = CONTRACT_ALIASES.get(name, name)
    return name if name in CONTRACTS else None


def has_contract(entity_type: Any) -> bool:
    return resolve_contract(entity_type) is not None


def validate(entity_type: Any, payload: Optional[Mapping[str, Any]]) -> ValidationResult:
    """
    Run the contract check for an entity type.

    Args:
        entity_type: Contract name or ledger entity type
        payload: Record snapshot (any mapping; None is treated as empty)

    Returns:
        ValidationResult with field-level errors and the gas estimate.
        Unknown types yield a single "Unknown contract type" error.
        A payload that is not a mapping yields "Payload must be an object".
    """
    contract = resolve_contract(entity_type)
    if contract is None:
        return ValidationResult(
            is_valid=False,
            errors=(UNKNOWN_CONTRACT_ERROR,),
            estimated_cost=BASE_GAS,
        )

    rule, gas = CONTRACTS[contract]
    if payload is None:
        payload = {}
    elif not isinstance(payload, Mapping):
        return ValidationResult(
            is_valid=False,
            errors=(NOT_A_MAPPING_ERROR,),
            estimated_cost=BASE_GAS + gas,
        )
    errors = rule(payload)
    return ValidationResult(
        is_valid=not errors,
        errors=tuple(errors),
        estimated_cost=BASE_GAS + gas,
    )
