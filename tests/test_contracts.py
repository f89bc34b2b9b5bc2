"""
Tests for the contract validation ruleset.
"""

import pytest

from ayutrace.contracts import BASE_GAS, ValidationResult, has_contract, validate
from ayutrace.ledger import EntityType


class TestCollectionContract:
    """Tests for the collection rule."""

    def test_valid_collection(self):
        result = validate("collection", {
            'latitude': 19.7515, 'longitude': 75.7139,
            'species_id': 'species-1', 'quantity': 2.5,
        })
        assert result.is_valid
        assert result.errors == ()
        assert result.estimated_cost == 75000

    def test_missing_species(self):
        result = validate("collection", {'latitude': 19.7, 'longitude': 75.7, 'quantity': 2.5})
        assert not result.is_valid
        assert result.errors == ("Species identification required",)
        assert result.estimated_cost == 75000

    def test_empty_payload_reports_every_field(self):
        result = validate("collection", {})
        assert result.errors == (
            "GPS coordinates required",
            "Species identification required",
            "Valid quantity required",
        )

    def test_zero_coordinates_are_present(self):
        """Equator and prime meridian are real places."""
        result = validate("collection", {
            'latitude': 0, 'longitude': 0, 'species_id': 's', 'quantity': 1,
        })
        assert result.is_valid

    def test_one_coordinate_is_not_enough(self):
        result = validate("collection", {'latitude': 19.7, 'species_id': 's', 'quantity': 1})
        assert result.errors == ("GPS coordinates required",)

    @pytest.mark.parametrize("quantity", [0, -1, "abc", None, "", True])
    def test_invalid_quantities(self, quantity):
        result = validate("collection", {
            'latitude': 1, 'longitude': 1, 'species_id': 's', 'quantity': quantity,
        })
        assert result.errors == ("Valid quantity required",)

    def test_numeric_string_quantity(self):
        result = validate("collection", {
            'latitude': 1, 'longitude': 1, 'species_id': 's', 'quantity': "12.50",
        })
        assert result.is_valid


class TestOtherContracts:
    """Tests for processing, quality test and product rules."""

    def test_processing(self):
        assert validate("processing", {'batch_id': 'b', 'step_type': 'drying'}).is_valid
        result = validate("processing", {'step_type': 'drying'})
        assert result.errors == ("Batch ID required",)
        assert result.estimated_cost == 85000

    def test_quality_test_and_alias(self):
        """The ledger's "test" entity type uses the quality test rule."""
        payload = {'test_type': 'moisture'}
        for name in ("quality_test", "test", EntityType.TEST):
            result = validate(name, payload)
            assert result.errors == ("Test result required",)
            assert result.estimated_cost == 90000

    def test_product(self):
        result = validate("product", {'name': 'Ashwagandha Powder', 'batch_ids': ['b-1']})
        assert result.is_valid
        assert result.estimated_cost == 110000

    def test_product_with_empty_batch_list(self):
        result = validate("product", {'name': 'Ashwagandha Powder', 'batch_ids': []})
        assert result.errors == ("At least one batch required",)


class TestUnknownContracts:
    """Tests for types without a rule."""

    @pytest.mark.parametrize("entity_type", ["shipment", "batch", None])
    def test_unknown_type(self, entity_type):
        result = validate(entity_type, {'anything': 1})
        assert result == ValidationResult(
            is_valid=False, errors=("Unknown contract type",), estimated_cost=BASE_GAS
        )

    @pytest.mark.parametrize("payload", [[1, 2], "lat=1", 42])
    def test_payload_must_be_a_mapping(self, payload):
        """Non-mapping payloads fail validation instead of raising."""
        result = validate("collection", payload)
        assert not result.is_valid
        assert result.errors == ("Payload must be an object",)
        assert result.estimated_cost == 75000

    def test_none_payload_treated_as_empty(self):
        result = validate("product", None)
        assert result.errors == ("Product name required", "At least one batch required")

    def test_has_contract(self):
        assert has_contract(EntityType.COLLECTION)
        assert has_contract("test")
        assert not has_contract(EntityType.BATCH)

    def test_result_to_dict(self):
        data = validate("processing", {}).to_dict()
        assert data['is_valid'] is False
        assert data['errors'] == ["Batch ID required", "Processing step type required"]
