"""
Tests for consumer traceability and product QR codes.
"""

import json
from datetime import datetime

import pytest

from ayutrace.ledger import TransactionStatus
from ayutrace.storage import DEMO_QR_CODE, create_storage
from ayutrace.traceability import TraceabilityService, build_qr, render_qr


@pytest.fixture
def store(ledger):
    return create_storage(ledger)


@pytest.fixture
def tracer(store):
    return TraceabilityService(store)


class TestTraceProduct:
    """Tests for trace_product()."""

    def test_demo_trace(self, tracer):
        trace = tracer.trace_product(DEMO_QR_CODE)

        assert trace.product.id == "demo-product-1"
        assert [b.id for b in trace.batches] == ["demo-batch-1"]
        assert [c.id for c in trace.collections] == ["demo-collection-1"]
        assert [s.id for s in trace.processing_steps] == ["demo-step-1"]
        assert [t.id for t in trace.quality_tests] == ["demo-test-1"]
        assert trace.passed_all_tests

    def test_unknown_qr_code(self, tracer):
        assert tracer.trace_product("QR-does-not-exist") is None

    def test_statuses_pending_before_confirmation(self, tracer):
        trace = tracer.trace_product(DEMO_QR_CODE)
        assert trace.status_counts() == {'pending': 5}
        assert not trace.fully_confirmed

    def test_statuses_after_settle(self, tracer, ledger):
        ledger.settle()
        trace = tracer.trace_product(DEMO_QR_CODE)

        assert trace.fully_confirmed
        assert tracer.ledger_status(trace.product) is TransactionStatus.CONFIRMED

    def test_failed_writes_are_reported(self, make_ledger):
        ledger = make_ledger(failure_rate=1.0)
        tracer = TraceabilityService(create_storage(ledger))
        ledger.settle()

        trace = tracer.trace_product(DEMO_QR_CODE)
        assert trace.status_counts() == {'failed': 5}
        assert not trace.fully_confirmed

    def test_shared_collections_listed_once(self, store, tracer):
        store.create_batch(
            id="batch-x", batch_number="ASW-2024-002",
            collection_ids=["demo-collection-1"], processor_id="user-2",
            status="completed", total_quantity=2.5, created_at=datetime(2024, 12, 8),
        )
        store.update_product("demo-product-1", batch_ids=["demo-batch-1", "batch-x", "gone"])

        trace = tracer.trace_product(DEMO_QR_CODE)
        assert [b.id for b in trace.batches] == ["demo-batch-1", "batch-x"]
        assert [c.id for c in trace.collections] == ["demo-collection-1"]

    def test_entity_history(self, store, tracer, clock):
        clock.advance(5)
        store.update_batch("demo-batch-2", status="processing")
        history = tracer.entity_history("demo-batch-2")
        assert [tx.action.value for tx in history] == ["update", "create"]

    def test_trace_serializes(self, tracer, ledger):
        ledger.settle()
        data = tracer.trace_product(DEMO_QR_CODE).to_dict()
        encoded = json.loads(json.dumps(data))
        assert encoded['product']['qr_code'] == DEMO_QR_CODE
        assert encoded['ledger']['demo-test-1']['status'] == "confirmed"


class TestProductQR:
    """Tests for QR rendering."""

    def test_ascii_rendering(self, tracer, store):
        product = store.get_product("demo-product-1")
        art = tracer.product_qr(product)
        assert isinstance(art, str)
        assert len(art.splitlines()) > 10

    def test_image_rendering(self, tmp_path):
        target = tmp_path / "qr.png"
        assert render_qr(DEMO_QR_CODE, str(target)) is None
        assert target.stat().st_size > 0

    def test_product_without_code(self, tracer, store):
        product = store.get_product("demo-product-1")
        product.qr_code = None
        with pytest.raises(ValueError):
            tracer.product_qr(product)

    def test_empty_data_rejected(self):
        with pytest.raises(ValueError):
            build_qr("")

    def test_qr_encodes_code(self):
        qr = build_qr(DEMO_QR_CODE)
        assert qr.version >= 1
