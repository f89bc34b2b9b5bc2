"""
Consumer Traceability

Resolves a scanned product QR code into the product's full provenance
(batches, collections, processing steps, quality tests) and reports
where each record stands on the ledger: pending, confirmed or failed.

A failed ledger transaction is surfaced as-is. Nothing here retries.

Author: AyuTrace Project
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..ledger.ledger import Ledger
from ..ledger.models import Transaction, TransactionStatus
from ..storage.memory import MemStorage
from ..storage.records import (
    Batch,
    Collection,
    ProcessingStep,
    Product,
    QualityTest,
    Record,
)
from .qr import render_qr


logger = logging.getLogger(__name__)


# ============================================================================
# Trace Structure
# ============================================================================

@dataclass
class ProductTrace:
    """Everything a consumer sees after scanning a product."""
    product: Product
    batches: List[Batch] = field(default_factory=list)
    collections: List[Collection] = field(default_factory=list)
    processing_steps: List[ProcessingStep] = field(default_factory=list)
    quality_tests: List[QualityTest] = field(default_factory=list)
    # entity id -> ledger transaction of its latest write (None if unknown)
    ledger_entries: Dict[str, Optional[Transaction]] = field(default_factory=dict)

    def records(self) -> List[Record]:
        return [
            self.product, *self.batches, *self.collections,
            *self.processing_steps, *self.quality_tests,
        ]

    def status_counts(self) -> Dict[str, int]:
        """Count trace records per ledger status ("unknown" if missing)."""
        counts: Dict[str, int] = {}
        for tx in self.ledger_entries.values():
            key = tx.status.value if tx else "unknown"
            counts[key] = counts.get(key, 0) + 1
        return counts

    @property
    def fully_confirmed(self) -> bool:
        """True when every record's latest write is confirmed on the ledger."""
        return bool(self.ledger_entries) and all(
            tx is not None and tx.status is TransactionStatus.CONFIRMED
            for tx in self.ledger_entries.values()
        )

    @property
    def passed_all_tests(self) -> bool:
        return bool(self.quality_tests) and all(
            t.result == "pass" for t in self.quality_tests
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'product': self.product.to_dict(),
            'batches': [b.to_dict() for b in self.batches],
            'collections': [c.to_dict() for c in self.collections],
            'processing_steps': [s.to_dict() for s in self.processing_steps],
            'quality_tests': [t.to_dict() for t in self.quality_tests],
            'ledger': {
                entity_id: tx.to_dict() if tx else None
                for entity_id, tx in self.ledger_entries.items()
            },
        }


# ============================================================================
# Service
# ============================================================================

class TraceabilityService:
    """Read-only provenance lookups over the store and the ledger."""

    def __init__(self, storage: MemStorage, ledger: Optional[Ledger] = None):
        self._storage = storage
        self._ledger = ledger or storage.ledger

    def trace_product(self, qr_code: str) -> Optional[ProductTrace]:
        """
        Build the provenance of the product carrying qr_code.

        Args:
            qr_code: Text of the scanned QR code

        Returns:
            ProductTrace, or None if no product carries the code.
            Batch or collection ids that no longer resolve are skipped.
        """
        product = self._storage.get_product_by_qr_code(qr_code)
        if product is None:
            logger.info("No product for QR code %s", qr_code)
            return None

        trace = ProductTrace(product=product)
        seen_collections = set()
        for batch_id in product.batch_ids:
            batch = self._storage.get_batch(batch_id)
            if batch is not None:
                trace.batches.append(batch)
                for collection_id in batch.collection_ids:
                    if collection_id in seen_collections:
                        continue
                    collection = self._storage.get_collection(collection_id)
                    if collection is not None:
                        seen_collections.add(collection_id)
                        trace.collections.append(collection)
            trace.quality_tests.extend(self._storage.get_quality_tests_by_batch(batch_id))
            trace.processing_steps.extend(
                self._storage.get_processing_steps_by_batch(batch_id)
            )

        for record in trace.records():
            trace.ledger_entries[record.id] = self.ledger_entry(record)
        return trace

    def ledger_entry(self, record: Record) -> Optional[Transaction]:
        """Ledger transaction of record's latest write, if any."""
        tx_id = getattr(record, 'blockchain_tx_id', None)
        if not tx_id:
            return None
        return self._ledger.get_transaction(tx_id)

    def ledger_status(self, record: Record) -> Optional[TransactionStatus]:
        """Pending, confirmed or failed; None when the record was never written."""
        tx = self.ledger_entry(record)
        return tx.status if tx else None

    def entity_history(self, entity_id: str) -> List[Transaction]:
        """Every ledger write for an entity, newest first."""
        return self._ledger.get_transactions_by_entity(entity_id)

    def product_qr(self, product: Product, filename: Optional[str] = None) -> Optional[str]:
        """
        Render the product's QR code.

        Raises:
            ValueError: If the product has no QR code
        """
        if not product.qr_code:
            raise ValueError(f"Product {product.id} has no QR code")
        return render_qr(product.qr_code, filename)
