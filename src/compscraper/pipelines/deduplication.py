"""
Comparable Deduplication Pipeline

Collapses the normalized record set of one job to a single representative per
natural key (canonical address, unit plan).
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from src.compscraper.models.records import NormalizedRecord
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

NaturalKey = Tuple[str, str]


class ComparableDeduplicator:
    """
    Deduplicates normalized comparables by natural key.

    First-seen wins: input order encodes adapter priority and then result
    order, so the earliest record for a key is kept and later ones dropped.
    """

    def dedupe(self, records: Iterable[NormalizedRecord]) -> List[NormalizedRecord]:
        """
        Keep one record per natural key.

        Args:
            records: Normalized records in priority order

        Returns:
            Records with distinct natural keys, in first-seen order
        """
        seen = set()
        unique: List[NormalizedRecord] = []
        total = 0

        for record in records:
            total += 1
            key = record.natural_key
            if key in seen:
                continue
            seen.add(key)
            unique.append(record)

        logger.info(
            "deduplication_complete",
            input_records=total,
            unique_records=len(unique),
            duplicates_dropped=total - len(unique),
        )
        return unique

    def find_duplicates(self, records: Iterable[NormalizedRecord]) -> Dict[NaturalKey, List[NormalizedRecord]]:
        """
        Group records sharing a natural key.

        Returns:
            Dictionary mapping natural key -> records, only for keys seen more than once
        """
        groups: Dict[NaturalKey, List[NormalizedRecord]] = defaultdict(list)
        for record in records:
            groups[record.natural_key].append(record)

        duplicates = {key: group for key, group in groups.items() if len(group) > 1}
        logger.debug("duplicates_found", duplicate_groups=len(duplicates))
        return duplicates


def dedupe(records: Iterable[NormalizedRecord]) -> List[NormalizedRecord]:
    """Deduplicate with first-seen-wins tie-breaking."""
    return ComparableDeduplicator().dedupe(records)
