"""
In-Memory Supply-Chain Store

Keeps supply-chain records in dictionaries and writes every create and
update to the ledger. The ledger is injected; the store never reaches
for a global instance.

Each write submits a ledger transaction carrying the record snapshot
and stores the returned tx_id on the record as blockchain_tx_id.

Author: AyuTrace Project
"""

import copy
import dataclasses
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from ..core.hashing import to_base36
from ..ledger.ledger import Ledger
from ..ledger.models import Action, EntityType, Transaction
from .records import (
    Batch,
    Collection,
    HerbSpecies,
    ProcessingStep,
    Product,
    QualityTest,
    Record,
    User,
)


logger = logging.getLogger(__name__)

R = TypeVar('R', bound=Record)

SYSTEM_USER = "system"


# ============================================================================
# Errors
# ============================================================================

class StorageError(Exception):
    """Base class for store errors."""
    pass


class RecordNotFoundError(StorageError):
    """Raised when updating a record that does not exist."""
    pass


class InvalidRecordError(StorageError, ValueError):
    """Raised when a record is missing fields or has bad values."""
    pass


@dataclass(frozen=True)
class DashboardStats:
    active_batches: int
    collections_today: int
    quality_tests: int
    blockchain_transactions: int

    def to_dict(self) -> Dict[str, int]:
        return dataclasses.asdict(self)


# ============================================================================
# Store
# ============================================================================

class MemStorage:
    """
    Dictionary-backed store for the supply-chain collaborators.

    Lookups return copies (or None when missing); writes go through the
    ledger. Under SubmissionPolicy.ENFORCE an invalid record is rejected
    by the ledger before it is stored.
    """

    def __init__(self, ledger: Ledger, seed_demo: bool = True):
        """
        Args:
            ledger: Ledger that records every create and update
            seed_demo: Load demo species, users and a complete demo chain
        """
        self._ledger = ledger
        self._users: Dict[str, User] = {}
        self._herb_species: Dict[str, HerbSpecies] = {}
        self._collections: Dict[str, Collection] = {}
        self._batches: Dict[str, Batch] = {}
        self._processing_steps: Dict[str, ProcessingStep] = {}
        self._quality_tests: Dict[str, QualityTest] = {}
        self._products: Dict[str, Product] = {}

        if seed_demo:
            seed_demo_data(self)

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    # ========================================================================
    # Generic Helpers
    # ========================================================================

    @staticmethod
    def _build(record_cls: Type[R], fields: Dict[str, Any]) -> R:
        fields = dict(fields)
        fields.setdefault('id', str(uuid.uuid4()))
        try:
            record = record_cls(**fields)
        except TypeError as exc:
            raise InvalidRecordError(f"{record_cls.__name__}: {exc}") from exc
        problems = record.problems()
        if problems:
            raise InvalidRecordError(f"{record_cls.__name__}: {'; '.join(problems)}")
        return record

    def _record_on_ledger(
        self,
        record: Record,
        entity_type: EntityType,
        action: Action,
        user_id: str
    ) -> Transaction:
        tx = self._ledger.submit(entity_type, record.id, action, record.to_dict(), user_id)
        record.blockchain_tx_id = tx.tx_id
        logger.debug("%s %s %s -> %s", action.value, entity_type.value, record.id, tx.tx_id)
        return tx

    def _create(
        self,
        table: Dict[str, R],
        record_cls: Type[R],
        entity_type: EntityType,
        user_of: Callable[[R], str],
        fields: Dict[str, Any]
    ) -> R:
        record = self._build(record_cls, fields)
        self._record_on_ledger(record, entity_type, Action.CREATE, user_of(record))
        table[record.id] = record
        return copy.deepcopy(record)

    def _update(
        self,
        table: Dict[str, R],
        record_id: str,
        entity_type: EntityType,
        user_of: Callable[[R], str],
        updates: Dict[str, Any]
    ) -> R:
        existing = table.get(record_id)
        if existing is None:
            raise RecordNotFoundError(f"{entity_type.value} {record_id} not found")
        updates = dict(updates)
        if updates.pop('id', record_id) != record_id:
            raise InvalidRecordError("Record id cannot change")
        if 'blockchain_tx_id' in updates:
            raise InvalidRecordError("blockchain_tx_id is set by the ledger")

        known = {f.name for f in dataclasses.fields(existing)}
        unknown = set(updates) - known
        if unknown:
            raise InvalidRecordError(f"Unknown fields: {', '.join(sorted(unknown))}")

        updated = dataclasses.replace(existing, **updates)
        problems = updated.problems()
        if problems:
            raise InvalidRecordError('; '.join(problems))

        self._record_on_ledger(updated, entity_type, Action.UPDATE, user_of(updated))
        table[record_id] = updated
        return copy.deepcopy(updated)

    @staticmethod
    def _get(table: Dict[str, R], record_id: str) -> Optional[R]:
        record = table.get(record_id)
        return copy.deepcopy(record) if record else None

    @staticmethod
    def _where(table: Dict[str, R], **criteria: Any) -> List[R]:
        return [
            copy.deepcopy(record) for record in table.values()
            if all(getattr(record, k) == v for k, v in criteria.items())
        ]

    # ========================================================================
    # Users
    # ========================================================================

    def get_user(self, user_id: str) -> Optional[User]:
        return self._get(self._users, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        matches = self._where(self._users, username=username)
        return matches[0] if matches else None

    def create_user(self, **fields: Any) -> User:
        user = self._build(User, fields)
        if self.get_user_by_username(user.username):
            raise InvalidRecordError(f"Username {user.username} already taken")
        self._users[user.id] = user
        return copy.deepcopy(user)

    def get_users_by_role(self, role: str) -> List[User]:
        return self._where(self._users, role=role)

    # ========================================================================
    # Herb Species
    # ========================================================================

    def get_all_herb_species(self) -> List[HerbSpecies]:
        return self._where(self._herb_species)

    def get_herb_species(self, species_id: str) -> Optional[HerbSpecies]:
        return self._get(self._herb_species, species_id)

    def create_herb_species(self, **fields: Any) -> HerbSpecies:
        species = self._build(HerbSpecies, fields)
        self._herb_species[species.id] = species
        return copy.deepcopy(species)

    # ========================================================================
    # Collections
    # ========================================================================

    def get_all_collections(self) -> List[Collection]:
        return self._where(self._collections)

    def get_collections_by_collector(self, collector_id: str) -> List[Collection]:
        return self._where(self._collections, collector_id=collector_id)

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        return self._get(self._collections, collection_id)

    def create_collection(self, **fields: Any) -> Collection:
        return self._create(
            self._collections, Collection, EntityType.COLLECTION,
            lambda c: c.collector_id, fields
        )

    def update_collection(self, collection_id: str, **updates: Any) -> Collection:
        return self._update(
            self._collections, collection_id, EntityType.COLLECTION,
            lambda c: c.collector_id, updates
        )

    # ========================================================================
    # Batches
    # ========================================================================

    def get_all_batches(self) -> List[Batch]:
        return self._where(self._batches)

    def get_batches_by_processor(self, processor_id: str) -> List[Batch]:
        return self._where(self._batches, processor_id=processor_id)

    def get_batches_by_status(self, status: str) -> List[Batch]:
        return self._where(self._batches, status=status)

    def get_batch(self, batch_id: str) -> Optional[Batch]:
        return self._get(self._batches, batch_id)

    def create_batch(self, **fields: Any) -> Batch:
        return self._create(
            self._batches, Batch, EntityType.BATCH, lambda b: b.processor_id, fields
        )

    def update_batch(self, batch_id: str, **updates: Any) -> Batch:
        return self._update(
            self._batches, batch_id, EntityType.BATCH, lambda b: b.processor_id, updates
        )

    # ========================================================================
    # Processing Steps
    # ========================================================================

    def get_processing_steps_by_batch(self, batch_id: str) -> List[ProcessingStep]:
        return self._where(self._processing_steps, batch_id=batch_id)

    def create_processing_step(self, **fields: Any) -> ProcessingStep:
        # Processing steps carry no operator, so the ledger sees the system user
        return self._create(
            self._processing_steps, ProcessingStep, EntityType.PROCESSING,
            lambda s: SYSTEM_USER, fields
        )

    # ========================================================================
    # Quality Tests
    # ========================================================================

    def get_quality_tests_by_batch(self, batch_id: str) -> List[QualityTest]:
        return self._where(self._quality_tests, batch_id=batch_id)

    def get_quality_tests_by_lab(self, lab_id: str) -> List[QualityTest]:
        return self._where(self._quality_tests, lab_id=lab_id)

    def create_quality_test(self, **fields: Any) -> QualityTest:
        return self._create(
            self._quality_tests, QualityTest, EntityType.TEST, lambda t: t.lab_id, fields
        )

    # ========================================================================
    # Products
    # ========================================================================

    def get_all_products(self) -> List[Product]:
        return self._where(self._products)

    def get_products_by_manufacturer(self, manufacturer_id: str) -> List[Product]:
        return self._where(self._products, manufacturer_id=manufacturer_id)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self._get(self._products, product_id)

    def get_product_by_qr_code(self, qr_code: str) -> Optional[Product]:
        matches = self._where(self._products, qr_code=qr_code)
        return matches[0] if matches else None

    def create_product(self, **fields: Any) -> Product:
        if not fields.get('qr_code'):
            fields['qr_code'] = self._new_qr_code()
        return self._create(
            self._products, Product, EntityType.PRODUCT,
            lambda p: p.manufacturer_id, fields
        )

    def update_product(self, product_id: str, **updates: Any) -> Product:
        return self._update(
            self._products, product_id, EntityType.PRODUCT,
            lambda p: p.manufacturer_id, updates
        )

    def _new_qr_code(self) -> str:
        millis = int(self._ledger.clock.now() * 1000)
        return f"QR-{millis}-{to_base36(uuid.uuid4().int)[:9]}"

    # ========================================================================
    # Ledger and Analytics
    # ========================================================================

    def get_ledger_transactions(self, entity_id: Optional[str] = None) -> List[Transaction]:
        """Ledger transactions for one entity, or all of them; newest first."""
        if entity_id is None:
            return self._ledger.get_all_transactions()
        return self._ledger.get_transactions_by_entity(entity_id)

    def get_dashboard_stats(self, today: Optional[date] = None) -> DashboardStats:
        today = today or datetime.now(timezone.utc).date()
        collections_today = sum(
            1 for c in self._collections.values()
            if _as_date(c.collection_date) >= today
        )
        return DashboardStats(
            active_batches=sum(1 for b in self._batches.values() if b.status == "processing"),
            collections_today=collections_today,
            quality_tests=len(self._quality_tests),
            blockchain_transactions=self._ledger.get_stats().total_transactions,
        )


def _as_date(value: Any) -> date:
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return value.date()
    return value


# ============================================================================
# Demo Data
# ============================================================================

DEMO_QR_CODE = "DEMO-QR-ASW001"


def seed_demo_data(store: MemStorage) -> None:
    """Load the Ashwagandha/Brahmi demo supply chain into store."""
    store.create_herb_species(
        id="species-1", name="Ashwagandha", scientific_name="Withania somnifera",
        description="Adaptogenic herb used for stress relief", harvesting_season="Winter",
    )
    store.create_herb_species(
        id="species-2", name="Brahmi", scientific_name="Bacopa monnieri",
        description="Brain tonic and memory enhancer", harvesting_season="Monsoon",
    )

    store.create_user(id="user-1", username="rajesh_collector", role="collector",
                      name="Rajesh Kumar", location="Maharashtra, India")
    store.create_user(id="user-2", username="processor_facility", role="processor",
                      name="Ayurvedic Processing Facility", location="Maharashtra, India")
    store.create_user(id="lab-1", username="herbal_lab", role="laboratory",
                      name="Herbal Testing Laboratory", location="Pune, India")
    store.create_user(id="mfr-1", username="ayur_manufacturer", role="manufacturer",
                      name="Ayur Wellness Manufacturing", location="Mumbai, India")

    store.create_collection(
        id="demo-collection-1", collector_id="user-1", species_id="species-1",
        latitude=19.7515, longitude=75.7139, quantity=2.5, quality_grade="excellent",
        collection_date=datetime(2024, 12, 1),
        notes="Organic Ashwagandha harvested from certified farm",
    )
    store.create_collection(
        id="demo-collection-2", collector_id="user-1", species_id="species-2",
        latitude=19.7515, longitude=75.7139, quantity=1.8, quality_grade="good",
        collection_date=datetime(2024, 12, 7),
        notes="Fresh Brahmi collected for processing",
    )
    store.create_batch(
        id="demo-batch-1", batch_number="ASW-2024-001",
        collection_ids=["demo-collection-1"], processor_id="user-2",
        status="completed", total_quantity=2.5,
        created_at=datetime(2024, 12, 1), completed_at=datetime(2024, 12, 5),
    )
    store.create_batch(
        id="demo-batch-2", batch_number="BRA-2024-001",
        collection_ids=["demo-collection-2"], processor_id="user-2",
        status="pending", total_quantity=1.8, created_at=datetime(2024, 12, 7),
    )
    store.create_processing_step(
        id="demo-step-1", batch_id="demo-batch-1", step_type="drying",
        temperature=60.0, humidity=30.0, duration=720,
        notes="Controlled drying at optimal temperature and humidity",
        processed_at=datetime(2024, 12, 2),
    )
    store.create_quality_test(
        id="demo-test-1", batch_id="demo-batch-1", lab_id="lab-1",
        test_type="moisture", test_value="8.5", unit="%", acceptable_range="6-10%",
        result="pass", certificate_url="https://example.com/cert-001.pdf",
        tested_at=datetime(2024, 12, 3),
        notes="Moisture content within acceptable limits",
    )
    store.create_product(
        id="demo-product-1", product_number="ASW-TAB-001",
        name="Ashwagandha Premium Tablets", product_type="tablets",
        manufacturer_id="mfr-1", batch_ids=["demo-batch-1"], batch_size=500,
        units="bottles", manufacturing_date=datetime(2024, 12, 6),
        expiry_date=datetime(2027, 12, 6), qr_code=DEMO_QR_CODE,
        notes="Premium quality Ashwagandha extract tablets",
    )
    logger.info("Seeded demo supply chain (%s)", DEMO_QR_CODE)


def create_storage(ledger: Ledger, seed_demo: bool = True) -> MemStorage:
    """Create a store bound to ledger."""
    return MemStorage(ledger, seed_demo=seed_demo)
