"""
Ledger Configuration

Defaults for the simulated ledger, gathered into an immutable
LedgerConfig that is handed to Ledger(config=...).

Author: AyuTrace Project
"""

from dataclasses import dataclass
from enum import Enum


# ============================================================================
# Constants
# ============================================================================

BLOCK_THRESHOLD = 5             # Confirmed transactions that trigger assembly
FAILURE_RATE = 0.05             # Probability a confirmation fails
MIN_CONFIRMATION_DELAY = 1.0    # Seconds
MAX_CONFIRMATION_DELAY = 3.0    # Seconds
MIN_GAS = 21000                 # Lowest gas charged on confirmation
GAS_SPREAD = 100000             # gas_used in [MIN_GAS, MIN_GAS + GAS_SPREAD)
MAX_NONCE = 1000000             # Block nonce in [0, MAX_NONCE)


class SubmissionPolicy(Enum):
    """Whether submit() consults the validation ruleset."""

    ADVISORY = "advisory"   # validate() is informational only
    ENFORCE = "enforce"     # invalid payloads are rejected


@dataclass(frozen=True)
class LedgerConfig:
    """
    Tunable parameters of the ledger simulator.

    Attributes:
        block_threshold: Confirmed-but-unblocked count that triggers assembly
        failure_rate: Probability (0..1) of a simulated confirmation failure
        min_confirmation_delay: Lower bound of the confirmation delay
        max_confirmation_delay: Upper bound of the confirmation delay
        min_gas: Lowest gas_used assigned on confirmation
        gas_spread: Width of the gas_used range
        submission_policy: ADVISORY or ENFORCE
    """
    block_threshold: int = BLOCK_THRESHOLD
    failure_rate: float = FAILURE_RATE
    min_confirmation_delay: float = MIN_CONFIRMATION_DELAY
    max_confirmation_delay: float = MAX_CONFIRMATION_DELAY
    min_gas: int = MIN_GAS
    gas_spread: int = GAS_SPREAD
    submission_policy: SubmissionPolicy = SubmissionPolicy.ADVISORY

    def __post_init__(self):
        if self.block_threshold < 1:
            raise ValueError("block_threshold must be at least 1")
        if not 0.0 <= self.failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")
        if self.min_confirmation_delay < 0:
            raise ValueError("min_confirmation_delay cannot be negative")
        if self.max_confirmation_delay < self.min_confirmation_delay:
            raise ValueError(
                "max_confirmation_delay must not be below min_confirmation_delay"
            )
        if self.min_gas < 0 or self.gas_spread < 1:
            raise ValueError("gas range must be non-negative and non-empty")
        if not isinstance(self.submission_policy, SubmissionPolicy):
            # Accept the plain string value, e.g. "enforce"
            object.__setattr__(
                self, 'submission_policy', SubmissionPolicy(self.submission_policy)
            )


DEFAULT_CONFIG = LedgerConfig()
