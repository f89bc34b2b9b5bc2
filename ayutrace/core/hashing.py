"""
Identifier and Digest Generation

Pluggable strategies producing transaction ids, correlation ids, block
hashes and merkle roots for the ledger simulator.

Strategies:
- RandomHashGenerator: "tx_..." / "hash_..." strings built from a
  millisecond timestamp, a process-unique counter and a random suffix.
  Looks unique, claims nothing cryptographic. This is the default.
- ContentHashGenerator: SHA-256 digests (via `cryptography`) over the
  block header and a binary Merkle tree over transaction ids.

Uniqueness is guaranteed by the counter, never by lookup-and-retry.

Author: AyuTrace Project
"""

import itertools
import random
import threading
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional, Sequence

from .merkle import build_merkle_root, sha256_hex


BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
RANDOM_SUFFIX_BITS = 52


def to_base36(value: int) -> str:
    """Encode a non-negative integer in base 36."""
    if value < 0:
        raise ValueError("Cannot encode a negative value")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


class HashGenerator(ABC):
    """
    Base class for identifier strategies.

    Subclasses share a thread-safe counter and a random source so that
    seeded generators are reproducible in tests.
    """

    # True when merkle_root and block_hash are pure functions of their inputs
    deterministic = False

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def _next_sequence(self) -> int:
        with self._lock:
            return next(self._counter)

    def correlation_id(self) -> str:
        """Return a fresh UUID4 string for the transaction's `id` field."""
        with self._lock:
            bits = self._rng.getrandbits(128)
        return str(uuid.UUID(int=bits, version=4))

    @abstractmethod
    def transaction_id(self) -> str:
        """Return a fresh transaction identifier."""

    @abstractmethod
    def merkle_root(self, tx_ids: Sequence[str]) -> str:
        """Return a digest summarizing tx_ids in the given order."""

    @abstractmethod
    def block_hash(
        self,
        height: int,
        previous_hash: str,
        merkle_root: str,
        timestamp: float,
        nonce: int
    ) -> str:
        """Return the hash for a new block."""


class RandomHashGenerator(HashGenerator):
    """Random-looking identifiers with a monotonic counter for uniqueness."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Args:
            rng: Random source for suffixes (seed it for reproducible ids)
            clock: Callable returning seconds since epoch; defaults to time.time
        """
        super().__init__(rng)
        self._clock = clock or time.time

    def _suffix(self) -> str:
        with self._lock:
            bits = self._rng.getrandbits(RANDOM_SUFFIX_BITS)
        return to_base36(bits)

    def _millis(self) -> int:
        return int(self._clock() * 1000)

    def _random_hash(self) -> str:
        return f"hash_{self._millis()}_{self._next_sequence()}_{self._suffix()}"

    def transaction_id(self) -> str:
        return f"tx_{self._millis()}_{self._next_sequence()}_{self._suffix()}"

    def merkle_root(self, tx_ids: Sequence[str]) -> str:
        # Content is ignored; the root only has to look unique
        return self._random_hash()

    def block_hash(
        self,
        height: int,
        previous_hash: str,
        merkle_root: str,
        timestamp: float,
        nonce: int
    ) -> str:
        return self._random_hash()


class ContentHashGenerator(HashGenerator):
    """SHA-256 based identifiers; block hashes commit to the header."""

    deterministic = True

    def transaction_id(self) -> str:
        seed = f"{self._next_sequence()}:{self.correlation_id()}"
        return sha256_hex(seed.encode())

    def merkle_root(self, tx_ids: Sequence[str]) -> str:
        return build_merkle_root(tx_ids)

    def block_hash(
        self,
        height: int,
        previous_hash: str,
        merkle_root: str,
        timestamp: float,
        nonce: int
    ) -> str:
        header = f"{height}|{previous_hash}|{merkle_root}|{timestamp!r}|{nonce}"
        return sha256_hex(header.encode())


def create_hash_generator(
    strategy: str = "random",
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], float]] = None
) -> HashGenerator:
    """
    Create a generator by strategy name.

    Args:
        strategy: "random" or "content"
        rng: Optional random source
        clock: Optional time source (random strategy only)

    Raises:
        ValueError: If the strategy name is unknown
    """
    if strategy == "random":
        return RandomHashGenerator(rng=rng, clock=clock)
    if strategy == "content":
        return ContentHashGenerator(rng=rng)
    raise ValueError(f"Unknown hash strategy: {strategy!r}")
