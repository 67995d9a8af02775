"""
Unit tests for the record normalizer
"""
import pytest

from src.compscraper.models.records import RawRecord
from src.compscraper.transformers.normalizer import (
    RecordNormalizer,
    build_unit_plan,
    extract_amenities,
    normalize,
    normalize_asset_type,
    parse_number,
)


class TestParseNumber:
    """Tests for parse_number"""

    @pytest.mark.parametrize("raw,expected", [
        ("$1,850/mo", 1850.0),
        ("1,200", 1200.0),
        ("150 units", 150.0),
        ("95%", 95.0),
        (1.95, 1.95),
        (12, 12.0),
    ])
    def test_parses_loose_values(self, raw, expected):
        """Test currency, separators and trailing text are tolerated"""
        assert parse_number(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "call for pricing", True, float("nan"), 10 ** 400])
    def test_unparsable_values(self, raw):
        """Test unparsable values yield None"""
        assert parse_number(raw) is None


class TestBuildUnitPlan:
    """Tests for build_unit_plan"""

    def test_all_parts(self):
        """Test the signature includes every present field"""
        assert build_unit_plan(150, 1.95, 1800.0) == "150u|$1.95psf|$1800pu"

    def test_partial_parts(self):
        """Test absent fields are omitted"""
        assert build_unit_plan(150, None, 1800.0) == "150u|$1800pu"
        assert build_unit_plan(None, None, 1850.5) == "$1850.5pu"

    def test_digest_fallback(self):
        """Test undescribed plans fall back to a name/notes digest"""
        first = build_unit_plan(None, None, None, name="Oak Apartments")
        second = build_unit_plan(None, None, None, name="Elm Apartments")
        assert first.startswith("~")
        assert len(first) == 11
        assert first != second
        assert first == build_unit_plan(None, None, None, name="oak apartments")

    def test_empty_plan(self):
        """Test nothing to describe gives an empty plan"""
        assert build_unit_plan(None, None, None) == ""


class TestExtractAmenities:
    """Tests for extract_amenities"""

    def test_vocabulary_from_notes(self):
        """Test amenities are found in free-text notes"""
        tags = extract_amenities("Resort-style swimming pool, 24hr fitness center and covered parking")
        assert tags == ["fitness", "parking", "pool"]

    def test_supplied_tags_are_merged(self):
        """Test explicit tags are mapped to the vocabulary and merged with notes"""
        tags = extract_amenities("Rooftop deck", ["Dog Park", {"name": "Pool"}, "Package Lockers"])
        assert tags == ["package lockers", "pet-friendly", "pool", "rooftop"]

    @pytest.mark.parametrize("supplied,expected", [
        (["pool", "gym"], ["fitness", "pool"]),
        (["Swimming Pool"], ["pool"]),
        ("Fitness Center, gym", ["fitness"]),
    ])
    def test_supplied_synonyms_collapse(self, supplied, expected):
        """Test supplied tags that name a vocabulary amenity keep only the canonical tag"""
        assert extract_amenities(None, supplied) == expected

    def test_nothing_found(self):
        """Test no notes or tags gives an empty list"""
        assert extract_amenities(None) == []


class TestNormalizeAssetType:
    """Tests for normalize_asset_type"""

    @pytest.mark.parametrize("raw,expected", [
        ("Apartment Complex", "Multifamily"),
        ("multi-family", "Multifamily"),
        ("Condominium", "Condo"),
        ("Office", "Commercial"),
        (None, "Multifamily"),
    ])
    def test_asset_type_labels(self, raw, expected):
        """Test asset type labels collapse to the known set"""
        assert normalize_asset_type(raw) == expected


class TestRecordNormalizer:
    """Tests for RecordNormalizer.normalize"""

    def test_full_record(self):
        """Test a typical scraped record normalizes completely"""
        record = normalize(RawRecord(
            name="  Oak   Apartments ",
            address="123 Main Street",
            city="Nashville",
            state="tn",
            units="150",
            rent_pu="$1,800",
            occupancy_pct="0.95",
            notes="Pool and fitness center",
            source="listing_crawler",
        ))

        assert record.name == "Oak Apartments"
        assert record.state == "TN"
        assert record.units == 150
        assert record.rent_pu == 1800.0
        assert record.occupancy_pct == 95.0
        assert record.amenity_tags == ["fitness", "pool"]
        assert record.canonical_address == "123 main st, nashville, tn"
        assert record.unit_plan == "150u|$1800pu"
        assert record.source == "listing_crawler"

    def test_accepts_plain_mapping(self):
        """Test mappings with alternate field names are accepted"""
        record = RecordNormalizer().normalize({"title": "Elm", "streetAddress": "9 Elm St", "zip": "37201"})
        assert record.name == "Elm"
        assert record.canonical_address == "9 elm st, 37201"
        assert record.source == "unknown"

    def test_invalid_fields_are_dropped(self):
        """Test out-of-range values are omitted rather than raising"""
        record = normalize({
            "address": "1 Main St",
            "units": "-4",
            "year_built": "1492",
            "rent_psf": "free",
            "occupancy_pct": "140",
            "concession_pct": "12%",
        })

        assert record.units is None
        assert record.year_built is None
        assert record.rent_psf is None
        assert record.occupancy_pct is None
        assert record.concession_pct == 12.0

    def test_record_without_address(self):
        """Test records without an address have no canonical address"""
        record = normalize({"name": "Mystery Towers"})
        assert record.canonical_address is None
        assert not record.has_address()

    def test_normalization_is_deterministic(self):
        """Test the same raw record always normalizes identically"""
        raw = {"name": "Oak", "address": "123 Main St", "units": 10, "amenities": "gym, pool"}
        assert normalize(raw) == normalize(raw)

    def test_huge_integer_does_not_raise(self):
        """Test integers too large for a float are omitted"""
        record = normalize({"address": "1 Main St", "units": 10 ** 400, "rent_pu": 10 ** 400})
        assert record.units is None
        assert record.rent_pu is None
        assert record.unit_plan == ""

    @pytest.mark.parametrize("raw,expected", [
        (0.95, 95.0),
        ("0.95", 95.0),
        (1.0, 100.0),
        (1, 1.0),
        ("1", 1.0),
        ("1%", 1.0),
        (94, 94.0),
    ])
    def test_occupancy_share_scaling(self, raw, expected):
        """Test only fractional occupancy values are read as shares"""
        assert normalize({"address": "1 Main St", "occupancy_pct": raw}).occupancy_pct == expected

    def test_locality_formatting_shares_natural_key(self):
        """Test one address formatted differently by two sources yields one natural key"""
        inline = normalize(RawRecord(address="123 Main Street, Nashville, TN 37201", units=150))
        split = normalize(RawRecord(address="123 Main Street", city="Nashville", state="TN", zip_code="37201", units=150))
        uncommaed = normalize(RawRecord(address="123 Main St, Nashville TN", city="Nashville", state="TN", zip="37201", units=150))

        assert inline.canonical_address == "123 main st, nashville, tn 37201"
        assert inline.natural_key == split.natural_key == uncommaed.natural_key
