# Traceability Module
"""
Consumer-facing provenance lookups by product QR code, with the ledger
status of every record in the chain of custody.
"""

from .qr import build_qr, render_qr
from .service import ProductTrace, TraceabilityService

__all__ = [
    'ProductTrace',
    'TraceabilityService',
    'build_qr',
    'render_qr',
]
