"""
Unit tests for comparable deduplication
"""
from src.compscraper.models.records import NormalizedRecord
from src.compscraper.pipelines.deduplication import ComparableDeduplicator, dedupe


def _record(address, plan="", source="primary", name=None):
    return NormalizedRecord(canonical_address=address, unit_plan=plan, source=source, name=name)


class TestDedupe:
    """Tests for dedupe"""

    def test_first_seen_wins(self):
        """Test the earliest record for a key is kept"""
        records = [
            _record("1 main st", "10u", source="primary"),
            _record("2 oak ave", "", source="primary"),
            _record("1 main st", "10u", source="secondary"),
        ]

        unique = dedupe(records)

        assert [r.canonical_address for r in unique] == ["1 main st", "2 oak ave"]
        assert unique[0].source == "primary"

    def test_unit_plan_is_part_of_key(self):
        """Test different unit plans at one address are kept"""
        records = [_record("1 main st", "10u"), _record("1 main st", "20u"), _record("1 main st")]
        assert len(dedupe(records)) == 3

    def test_dedupe_is_idempotent(self):
        """Test deduplicating twice changes nothing"""
        records = [_record("1 main st"), _record("1 main st"), _record("2 oak ave")]
        once = dedupe(records)
        assert dedupe(once) == once

    def test_empty_input(self):
        """Test empty input gives empty output"""
        assert dedupe([]) == []


class TestFindDuplicates:
    """Tests for ComparableDeduplicator.find_duplicates"""

    def test_groups_only_repeated_keys(self):
        """Test only keys seen more than once are reported"""
        records = [
            _record("1 main st", name="A"),
            _record("1 main st", name="B"),
            _record("2 oak ave", name="C"),
        ]

        duplicates = ComparableDeduplicator().find_duplicates(records)

        assert list(duplicates) == [("1 main st", "")]
        assert [r.name for r in duplicates[("1 main st", "")]] == ["A", "B"]
