"""
Merkle Tree over transaction identifiers

Binary hash tree used by the content-hash identifier strategy:
- Leaf nodes hash one transaction id (0x00 prefix)
- Internal nodes hash their two children (0x01 prefix)
- Odd layers duplicate their last node

SHA-256 comes from the `cryptography` package.

Author: AyuTrace Project
"""

from typing import List, Optional, Sequence

from cryptography.hazmat.primitives import hashes


def sha256(data: bytes) -> bytes:
    """Return the SHA-256 digest of data."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 digest of data as lowercase hex."""
    return sha256(data).hex()


class MerkleTree:
    """
    Merkle tree built from a sequence of string leaves.

    Example:
        >>> tree = MerkleTree()
        >>> root = tree.build(["tx_1", "tx_2", "tx_3"])
        >>> tree.leaf_count
        3
    """

    def __init__(self):
        self._layers: List[List[bytes]] = []
        self._root: Optional[bytes] = None

    @staticmethod
    def hash_leaf(data: bytes) -> bytes:
        return sha256(b'\x00' + data)

    @staticmethod
    def hash_internal(left: bytes, right: bytes) -> bytes:
        return sha256(b'\x01' + left + right)

    def build(self, leaves: Sequence[str]) -> bytes:
        """
        Build the tree and return its root.

        An empty sequence yields the hash of an empty leaf so that
        blocks without transactions still carry a root.

        Args:
            leaves: Leaf values in order (order matters)

        Returns:
            Root hash (32 bytes)
        """
        current_layer = [self.hash_leaf(leaf.encode()) for leaf in leaves]
        if not current_layer:
            current_layer = [self.hash_leaf(b'')]

        self._layers = [list(current_layer)]
        while len(current_layer) > 1:
            if len(current_layer) % 2 == 1:
                current_layer.append(current_layer[-1])
            current_layer = [
                self.hash_internal(current_layer[i], current_layer[i + 1])
                for i in range(0, len(current_layer), 2)
            ]
            self._layers.append(current_layer)

        self._root = current_layer[0]
        return self._root

    @property
    def root(self) -> Optional[bytes]:
        return self._root

    @property
    def root_hex(self) -> Optional[str]:
        return self._root.hex() if self._root else None

    @property
    def leaf_count(self) -> int:
        # An empty build still holds one placeholder leaf
        return len(self._layers[0]) if self._layers else 0

    @property
    def height(self) -> int:
        """Number of layers, leaves included."""
        return len(self._layers)

    def __repr__(self) -> str:
        if not self._root:
            return "MerkleTree(empty)"
        return f"MerkleTree(height={self.height}, root={self.root_hex[:16]}...)"


def build_merkle_root(leaves: Sequence[str]) -> str:
    """Build a tree over leaves and return the hex root."""
    tree = MerkleTree()
    return tree.build(leaves).hex()
