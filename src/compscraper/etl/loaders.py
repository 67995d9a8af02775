"""
ETL Loaders

Persist deduplicated NormalizedRecords as stored comparables.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.orm import Session

from src.compscraper.db.base import utcnow
from src.compscraper.db.repository import ComparableRepository
from src.compscraper.models.records import NormalizedRecord
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)


class ComparableLoader:
    """
    Load normalized comparables into the database.

    Each row is written inside its own SAVEPOINT, so one failing row is
    rolled back, logged and skipped without aborting the batch.
    """

    def __init__(self, repository: Optional[ComparableRepository] = None):
        self.repository = repository or ComparableRepository()

    def load(
        self,
        session: Session,
        record: NormalizedRecord,
        job_id: Optional[str] = None,
        scraped_at: Optional[datetime] = None,
    ) -> bool:
        """
        Upsert one comparable.

        Returns:
            True if a new row was inserted, False if an existing row was updated
        """
        with session.begin_nested():
            _, created = self.repository.upsert(session, record, job_id=job_id, scraped_at=scraped_at)
        return created

    def bulk_load(
        self,
        session: Session,
        records: Iterable[NormalizedRecord],
        job_id: Optional[str] = None,
        scraped_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Upsert a batch of comparables.

        Args:
            session: Database session
            records: Deduplicated normalized records
            job_id: Job writing the rows
            scraped_at: Shared scrape timestamp for the batch

        Returns:
            Stats dict with processed/inserted/updated/written/failed counts
            and per-row error strings
        """
        scraped_at = scraped_at or utcnow()
        stats: Dict[str, Any] = {
            'processed': 0,
            'inserted': 0,
            'updated': 0,
            'written': 0,
            'failed': 0,
            'errors': [],
        }

        for record in records:
            stats['processed'] += 1
            try:
                created = self.load(session, record, job_id=job_id, scraped_at=scraped_at)
            except Exception as e:
                stats['failed'] += 1
                stats['errors'].append(f"{record.canonical_address or record.name or '<no address>'}: {e}")
                logger.error(
                    "comparable_load_failed",
                    canonical_address=record.canonical_address,
                    unit_plan=record.unit_plan,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            stats['inserted' if created else 'updated'] += 1
            stats['written'] += 1

        logger.info(
            "comparables_bulk_loaded",
            processed=stats['processed'],
            inserted=stats['inserted'],
            updated=stats['updated'],
            failed=stats['failed'],
        )
        return stats
