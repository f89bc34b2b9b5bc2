"""
Supply-Chain Records

Plain dataclasses for the stakeholders and events of an Ayurvedic herb
supply chain: collectors harvest, processors batch and treat, labs test,
manufacturers produce, consumers look products up by QR code.

Author: AyuTrace Project
"""

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, Dict, List, Optional


# ============================================================================
# Vocabularies
# ============================================================================

USER_ROLES = ("collector", "processor", "laboratory", "manufacturer", "consumer", "admin")
QUALITY_GRADES = ("excellent", "good", "fair", "poor")
BATCH_STATUSES = ("pending", "processing", "completed", "rejected")
PROCESSING_STEPS = ("cleaning", "drying", "grinding", "sieving", "packaging")
TEST_TYPES = ("moisture", "pesticide", "dna", "heavymetals", "microbial")
TEST_RESULTS = ("pass", "fail", "retest")
PRODUCT_TYPES = ("tablets", "capsules", "powder", "syrup", "oil")


def _jsonable(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


class Record:
    """Mixin giving records a JSON-compatible snapshot and field checks."""

    # Field name -> allowed values
    CHOICES: Dict[str, tuple] = {}

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _jsonable(getattr(self, f.name)) for f in fields(self)}

    def problems(self) -> List[str]:
        """Describe missing required fields and out-of-vocabulary values."""
        found = []
        for f in fields(self):
            value = getattr(self, f.name)
            required = f.metadata.get('required', False)
            if required and (value is None or value == "" or value == []):
                found.append(f"{f.name} is required")
        for name, allowed in self.CHOICES.items():
            value = getattr(self, name)
            if value is not None and value not in allowed:
                found.append(f"{name} must be one of {', '.join(allowed)}")
        return found


def required():
    return field(metadata={'required': True})


# ============================================================================
# Master Data
# ============================================================================

@dataclass
class User(Record):
    CHOICES = {'role': USER_ROLES}

    id: str = required()
    username: str = required()
    role: str = required()
    name: str = required()
    location: Optional[str] = None


@dataclass
class HerbSpecies(Record):
    id: str = required()
    name: str = required()
    scientific_name: str = required()
    description: Optional[str] = None
    harvesting_season: Optional[str] = None


# ============================================================================
# Supply-Chain Events
# ============================================================================

@dataclass
class Collection(Record):
    """A harvest recorded by a collector, with GPS coordinates."""
    CHOICES = {'quality_grade': QUALITY_GRADES}

    id: str = required()
    collector_id: str = required()
    species_id: str = required()
    latitude: float = required()
    longitude: float = required()
    quantity: float = required()
    quality_grade: str = required()
    collection_date: datetime = required()
    notes: Optional[str] = None
    photos: Optional[List[str]] = None
    blockchain_tx_id: Optional[str] = None

    def problems(self) -> List[str]:
        found = super().problems()
        value = self.collection_date
        if isinstance(value, str) and value:
            try:
                datetime.fromisoformat(value)
            except ValueError:
                found.append("collection_date must be an ISO date")
        elif value is not None and not isinstance(value, date):
            found.append("collection_date must be a date")
        return found


@dataclass
class Batch(Record):
    """Collections grouped by a processor."""
    CHOICES = {'status': BATCH_STATUSES}

    id: str = required()
    batch_number: str = required()
    collection_ids: List[str] = required()
    processor_id: str = required()
    status: str = required()
    total_quantity: float = required()
    created_at: datetime = required()
    completed_at: Optional[datetime] = None
    blockchain_tx_id: Optional[str] = None


@dataclass
class ProcessingStep(Record):
    CHOICES = {'step_type': PROCESSING_STEPS}

    id: str = required()
    batch_id: str = required()
    step_type: str = required()
    processed_at: datetime = required()
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    duration: Optional[int] = None      # minutes
    notes: Optional[str] = None
    blockchain_tx_id: Optional[str] = None


@dataclass
class QualityTest(Record):
    CHOICES = {'test_type': TEST_TYPES, 'result': TEST_RESULTS}

    id: str = required()
    batch_id: str = required()
    lab_id: str = required()
    test_type: str = required()
    test_value: str = required()
    result: str = required()
    tested_at: datetime = required()
    unit: Optional[str] = None
    acceptable_range: Optional[str] = None
    certificate_url: Optional[str] = None
    notes: Optional[str] = None
    blockchain_tx_id: Optional[str] = None


@dataclass
class Product(Record):
    """Finished goods made from one or more batches."""
    CHOICES = {'product_type': PRODUCT_TYPES}

    id: str = required()
    product_number: str = required()
    name: str = required()
    product_type: str = required()
    manufacturer_id: str = required()
    batch_ids: List[str] = required()
    batch_size: int = required()
    units: str = required()
    manufacturing_date: datetime = required()
    expiry_date: datetime = required()
    qr_code: Optional[str] = None
    notes: Optional[str] = None
    blockchain_tx_id: Optional[str] = None
