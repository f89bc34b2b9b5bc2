# Core Module
"""
Identifier and digest helpers shared by the ledger:
- Random and content-hash identifier strategies
- Merkle tree over transaction ids (SHA-256 from `cryptography`)
"""
