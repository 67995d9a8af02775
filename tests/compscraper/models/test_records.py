"""
Unit tests for raw and normalized record models
"""
from src.compscraper.models.records import NormalizedRecord, RawRecord


class TestRawRecord:
    """Tests for RawRecord"""

    def test_accepts_source_field_variants(self):
        """Test alternate field names populate the same fields"""
        record = RawRecord.model_validate({
            "title": "Oak Apartments",
            "streetAddress": "123 Main Street",
            "zipCode": "37201",
            "unit_count": "1,200",
            "rentPu": "$1,850",
            "amenities": ["Pool"],
            "listing_id": "abc",
        })

        assert record.name == "Oak Apartments"
        assert record.address == "123 Main Street"
        assert record.zip_code == "37201"
        assert record.units == "1,200"
        assert record.rent_pu == "$1,850"
        assert record.amenity_tags == ["Pool"]
        assert record.model_extra == {"listing_id": "abc"}

    def test_with_locality_fills_missing_only(self):
        """Test query locality fills only absent city/state"""
        bare = RawRecord(address="123 Main Street")
        filled = bare.with_locality("Nashville", "TN")
        assert (filled.city, filled.state) == ("Nashville", "TN")
        assert bare.city is None

        located = RawRecord(address="1 Peachtree St", city="Atlanta", state="GA")
        assert located.with_locality("Nashville", "TN") is located


class TestNormalizedRecord:
    """Tests for NormalizedRecord"""

    def test_natural_key(self):
        """Test the natural key pairs canonical address and unit plan"""
        record = NormalizedRecord(canonical_address="123 main st, nashville, tn", unit_plan="150u|$1800pu")
        assert record.natural_key == ("123 main st, nashville, tn", "150u|$1800pu")
        assert record.has_address()

    def test_empty_amenities_stored_as_null(self):
        """Test empty amenity lists become None in row values"""
        assert NormalizedRecord(canonical_address="a").to_row()["amenity_tags"] is None
        assert NormalizedRecord(canonical_address="a", amenity_tags=["pool"]).to_row()["amenity_tags"] == ["pool"]
