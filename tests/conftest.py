import pytest

from ayutrace.config import LedgerConfig
from ayutrace.ledger import ManualClock, create_ledger


START_TIME = 1_700_000_000.0


@pytest.fixture
def clock():
    return ManualClock(start=START_TIME)


@pytest.fixture
def make_ledger(clock):
    """Factory: make_ledger(strategy="random", seed=42, **config_overrides)."""
    def factory(strategy="random", seed=42, **overrides):
        return create_ledger(
            config=LedgerConfig(**overrides),
            clock=clock,
            hash_strategy=strategy,
            seed=seed,
        )
    return factory


@pytest.fixture
def ledger(make_ledger):
    """Ledger whose confirmations never fail."""
    return make_ledger(failure_rate=0.0)
