# AyuTrace
"""
Ayurvedic herb supply-chain traceability on a simulated ledger.

Packages:
- core: identifier strategies and Merkle roots
- contracts: advisory "smart contract" validation
- ledger: pending pool, deferred confirmation, blocks and queries
- storage: in-memory supply-chain records written to the ledger
- traceability: consumer lookups by product QR code
"""

__version__ = "1.0.0"
