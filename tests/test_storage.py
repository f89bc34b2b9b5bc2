"""
Tests for the in-memory supply-chain store and its ledger writes.
"""

from datetime import date, datetime

import pytest

from ayutrace.config import SubmissionPolicy
from ayutrace.ledger import Action, ContractViolationError, EntityType, TransactionStatus
from ayutrace.storage import (
    DEMO_QR_CODE,
    InvalidRecordError,
    RecordNotFoundError,
    create_storage,
)


@pytest.fixture
def store(ledger):
    return create_storage(ledger)


def harvest(**overrides):
    fields = dict(
        collector_id="user-1", species_id="species-1",
        latitude=19.75, longitude=75.71, quantity=3.0,
        quality_grade="good", collection_date=datetime(2024, 12, 10),
    )
    fields.update(overrides)
    return fields


class TestDemoData:
    """Tests for the seeded demo chain."""

    def test_master_data(self, store):
        assert {s.name for s in store.get_all_herb_species()} == {"Ashwagandha", "Brahmi"}
        assert store.get_user_by_username("rajesh_collector").id == "user-1"
        assert [u.id for u in store.get_users_by_role("laboratory")] == ["lab-1"]

    def test_demo_records_written_to_ledger(self, store, ledger):
        assert ledger.get_stats().total_transactions == 7
        collection = store.get_collection("demo-collection-1")
        tx = ledger.get_transaction(collection.blockchain_tx_id)
        assert tx.entity_type is EntityType.COLLECTION
        assert tx.entity_id == "demo-collection-1"

    def test_unseeded_store_is_empty(self, ledger):
        store = create_storage(ledger, seed_demo=False)
        assert store.get_all_products() == []
        assert ledger.get_stats().total_transactions == 0


class TestLedgerWrites:
    """Tests for what each write submits."""

    def test_create_records_snapshot(self, store, ledger):
        collection = store.create_collection(**harvest())
        tx = ledger.get_transaction(collection.blockchain_tx_id)

        assert tx.action is Action.CREATE
        assert tx.user_id == "user-1"
        assert tx.status is TransactionStatus.PENDING
        # The snapshot is taken before the tx id is known
        assert tx.payload == dict(collection.to_dict(), blockchain_tx_id=None)
        assert tx.payload['collection_date'] == "2024-12-10T00:00:00"

    @pytest.mark.parametrize("create, fields, user", [
        ("create_batch", dict(
            batch_number="X-1", collection_ids=["demo-collection-2"], processor_id="user-2",
            status="pending", total_quantity=1.8, created_at=datetime(2024, 12, 8),
        ), "user-2"),
        ("create_processing_step", dict(
            batch_id="demo-batch-2", step_type="cleaning", processed_at=datetime(2024, 12, 8),
        ), "system"),
        ("create_quality_test", dict(
            batch_id="demo-batch-2", lab_id="lab-1", test_type="dna", test_value="match",
            result="pass", tested_at=datetime(2024, 12, 9),
        ), "lab-1"),
        ("create_product", dict(
            product_number="BRA-CAP-001", name="Brahmi Capsules", product_type="capsules",
            manufacturer_id="mfr-1", batch_ids=["demo-batch-2"], batch_size=100,
            units="bottles", manufacturing_date=datetime(2024, 12, 10),
            expiry_date=datetime(2026, 12, 10),
        ), "mfr-1"),
    ])
    def test_submitting_user(self, store, ledger, create, fields, user):
        record = getattr(store, create)(**fields)
        assert ledger.get_transaction(record.blockchain_tx_id).user_id == user

    def test_update_submits_update(self, store, ledger, clock):
        clock.advance(60)
        batch = store.update_batch("demo-batch-2", status="processing")
        tx = ledger.get_transaction(batch.blockchain_tx_id)

        assert tx.action is Action.UPDATE
        assert tx.payload['status'] == "processing"
        assert [t.action for t in store.get_ledger_transactions("demo-batch-2")] == \
            [Action.UPDATE, Action.CREATE]

    def test_returned_records_are_copies(self, store):
        collection = store.get_collection("demo-collection-1")
        collection.quantity = 0
        assert store.get_collection("demo-collection-1").quantity == 2.5

    def test_enforced_contract_blocks_store(self, make_ledger):
        ledger = make_ledger(submission_policy=SubmissionPolicy.ENFORCE)
        store = create_storage(ledger, seed_demo=False)

        with pytest.raises(ContractViolationError):
            store.create_collection(**harvest(quantity=0))
        assert store.get_all_collections() == []
        assert ledger.pending_transactions == []


class TestInvalidWrites:
    """Tests for rejected records."""

    def test_missing_required_field(self, store):
        fields = harvest()
        del fields['species_id']
        with pytest.raises(InvalidRecordError):
            store.create_collection(**fields)

    def test_unknown_field(self, store):
        with pytest.raises(InvalidRecordError):
            store.create_collection(**harvest(colour="green"))

    def test_bad_vocabulary(self, store):
        with pytest.raises(InvalidRecordError, match="quality_grade"):
            store.create_collection(**harvest(quality_grade="stellar"))

    def test_invalid_record_is_value_error(self, store):
        with pytest.raises(ValueError):
            store.update_batch("demo-batch-2", status="lost")

    def test_update_missing_record(self, store):
        with pytest.raises(RecordNotFoundError, match="batch nope not found"):
            store.update_batch("nope", status="processing")

    def test_update_cannot_change_id(self, store):
        with pytest.raises(InvalidRecordError):
            store.update_product("demo-product-1", id="other")

    def test_update_cannot_set_ledger_id(self, store, ledger):
        before = ledger.get_stats().total_transactions
        with pytest.raises(InvalidRecordError, match="blockchain_tx_id"):
            store.update_batch("demo-batch-2", blockchain_tx_id="tx_bogus")
        assert ledger.get_stats().total_transactions == before

    def test_update_with_same_id(self, store, ledger, clock):
        clock.advance(1)
        batch = store.update_batch("demo-batch-2", id="demo-batch-2", status="processing")
        tx = ledger.get_transaction(batch.blockchain_tx_id)
        assert tx.action is Action.UPDATE
        # The snapshot carries the previous write's tx id, never a caller's
        assert tx.payload["blockchain_tx_id"] != batch.blockchain_tx_id

    def test_duplicate_username(self, store):
        with pytest.raises(InvalidRecordError):
            store.create_user(username="rajesh_collector", role="collector", name="Imposter")

    def test_failed_write_leaves_no_transaction(self, store, ledger):
        before = ledger.get_stats().total_transactions
        with pytest.raises(InvalidRecordError):
            store.create_collection(**harvest(quality_grade="stellar"))
        assert ledger.get_stats().total_transactions == before


class TestProducts:
    """Tests for QR codes on products."""

    def test_lookup_by_qr(self, store):
        assert store.get_product_by_qr_code(DEMO_QR_CODE).id == "demo-product-1"
        assert store.get_product_by_qr_code("QR-unknown") is None

    def test_qr_code_assigned(self, store, clock):
        product = store.create_product(
            product_number="ASW-PWD-001", name="Ashwagandha Powder", product_type="powder",
            manufacturer_id="mfr-1", batch_ids=["demo-batch-1"], batch_size=200,
            units="packets", manufacturing_date=datetime(2024, 12, 8),
            expiry_date=datetime(2026, 12, 8),
        )
        assert product.qr_code.startswith(f"QR-{int(clock.now() * 1000)}-")
        assert store.get_product_by_qr_code(product.qr_code).id == product.id


class TestDashboard:
    """Tests for dashboard stats."""

    def test_stats(self, store):
        stats = store.get_dashboard_stats(today=date(2024, 12, 7))
        assert stats.collections_today == 1
        assert stats.active_batches == 0
        assert stats.quality_tests == 1
        assert stats.blockchain_transactions == 7

    def test_active_batches(self, store):
        store.update_batch("demo-batch-2", status="processing")
        stats = store.get_dashboard_stats(today=date(2024, 12, 7))
        assert stats.active_batches == 1
        assert stats.blockchain_transactions == 8

    def test_iso_string_collection_dates(self, store):
        """Collections stored with ISO date strings still count."""
        store.create_collection(**harvest(collection_date="2024-12-10"))
        store.create_collection(**harvest(collection_date="2024-12-11T08:30:00"))

        stats = store.get_dashboard_stats(today=date(2024, 12, 10))
        assert stats.collections_today == 2

    def test_unparseable_collection_date_rejected(self, store):
        with pytest.raises(InvalidRecordError, match="collection_date"):
            store.create_collection(**harvest(collection_date="last tuesday"))
        with pytest.raises(InvalidRecordError, match="collection_date"):
            store.create_collection(**harvest(collection_date=20241210))
