"""
Repository Pattern for Data Access

Provides CRUD operations, the job lifecycle writes and the comparable upsert.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from sqlalchemy import desc, func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from config.settings import settings
from src.compscraper.db.base import utcnow
from src.compscraper.db.models import Comparable, ScrapeJob
from src.compscraper.exceptions import InvalidJobTransitionError, JobNotFoundError
from src.compscraper.models.job import JobStatus
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import NormalizedRecord
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        """
        Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def get_all(self, session: Session, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        query = select(self.model).offset(offset)
        if limit:
            query = query.limit(limit)
        return list(session.execute(query).scalars().all())

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.info("repository_created", model=self.model.__name__, id=getattr(instance, 'id', None))
        return instance

    def count(self, session: Session) -> int:
        """
        Count total records.

        Args:
            session: Database session

        Returns:
            Total count
        """
        count = session.scalar(select(func.count()).select_from(self.model))
        logger.debug("repository_count", model=self.model.__name__, count=count)
        return count


class ScrapeJobRepository(BaseRepository):
    """
    Repository for ScrapeJob with lifecycle-checked status writes.

    Every status write verifies the queued -> running -> terminal order and
    raises InvalidJobTransitionError otherwise.
    """

    def __init__(self):
        super().__init__(ScrapeJob)

    def create_job(self, session: Session, query: Union[ScrapeQuery, Dict[str, Any]]) -> ScrapeJob:
        """
        Create a queued job.

        Args:
            session: Database session
            query: Scrape query (stored verbatim)

        Returns:
            ScrapeJob instance
        """
        payload = query.to_dict() if isinstance(query, ScrapeQuery) else dict(query)
        job = ScrapeJob(query=payload, status=JobStatus.QUEUED.value, records_inserted=0)
        session.add(job)
        session.flush()

        logger.info("scrape_job_created", job_id=job.id, address=payload.get('address'))
        return job

    def get_job(self, session: Session, job_id: str) -> Optional[ScrapeJob]:
        return self.get_by_id(session, job_id)

    def require_job(self, session: Session, job_id: str, for_update: bool = False) -> ScrapeJob:
        """
        Load a job or raise.

        Raises:
            JobNotFoundError: No job with this id
        """
        job = session.get(ScrapeJob, job_id, with_for_update=for_update)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def mark_running(self, session: Session, job_id: str) -> ScrapeJob:
        """
        Move a queued job to running and record started_at.

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: Job is not queued
        """
        job = self.require_job(session, job_id, for_update=True)
        self._check_transition(job, JobStatus.RUNNING, allowed_from=(JobStatus.QUEUED,))

        job.status = JobStatus.RUNNING.value
        job.started_at = utcnow()
        job.finished_at = None
        job.error = None
        session.flush()

        logger.info("job_marked_running", job_id=job_id)
        return job

    def update_meta(self, session: Session, job_id: str, **fields) -> ScrapeJob:
        """
        Shallow-merge advisory progress fields into a running job's meta.

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: Job is not running
        """
        job = self.require_job(session, job_id)
        self._check_transition(job, JobStatus.RUNNING, allowed_from=(JobStatus.RUNNING,))

        meta = dict(job.meta or {})
        meta.update(fields)
        job.meta = meta
        session.flush()

        logger.debug("job_meta_updated", job_id=job_id, stage=fields.get('stage'))
        return job

    def mark_succeeded(
        self,
        session: Session,
        job_id: str,
        records_inserted: int,
        meta: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> ScrapeJob:
        """
        Move a running job to succeeded.

        Args:
            session: Database session
            job_id: Job ID
            records_inserted: Rows successfully written
            meta: Final advisory payload, merged into existing meta
            error: Aggregated row-level error text, if any

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: Job is not running
        """
        job = self.require_job(session, job_id, for_update=True)
        self._check_transition(job, JobStatus.SUCCEEDED, allowed_from=(JobStatus.RUNNING,))

        job.status = JobStatus.SUCCEEDED.value
        job.records_inserted = max(int(records_inserted), 0)
        job.error = error
        job.finished_at = utcnow()
        if meta:
            job.meta = {**(job.meta or {}), **meta}
        session.flush()

        logger.info("job_marked_succeeded", job_id=job_id, records_inserted=job.records_inserted)
        return job

    def mark_failed(
        self,
        session: Session,
        job_id: str,
        error: str,
        meta: Optional[Dict[str, Any]] = None,
    ) -> ScrapeJob:
        """
        Move a queued or running job to failed.

        A job failed straight from queued also gets started_at so that
        started_at is set whenever the job is terminal.

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: Job is already terminal
        """
        job = self.require_job(session, job_id, for_update=True)
        self._check_transition(
            job, JobStatus.FAILED, allowed_from=(JobStatus.QUEUED, JobStatus.RUNNING)
        )

        now = utcnow()
        job.status = JobStatus.FAILED.value
        job.error = error
        job.started_at = job.started_at or now
        job.finished_at = now
        if meta:
            job.meta = {**(job.meta or {}), **meta}
        session.flush()

        logger.warning("job_marked_failed", job_id=job_id, error=(error or '')[:200])
        return job

    def get_recent_jobs(
        self,
        session: Session,
        limit: int = 20,
        status: Optional[JobStatus] = None,
    ) -> List[ScrapeJob]:
        """
        Get most recently created jobs.

        Args:
            session: Database session
            limit: Maximum number of jobs
            status: Optional status filter

        Returns:
            Jobs ordered newest first
        """
        query = select(ScrapeJob).order_by(desc(ScrapeJob.created_at)).limit(limit)
        if status is not None:
            query = query.where(ScrapeJob.status == JobStatus.parse(status).value)
        return list(session.execute(query).scalars().all())

    @staticmethod
    def _check_transition(job: ScrapeJob, target: JobStatus, allowed_from: Tuple[JobStatus, ...]):
        current = JobStatus.parse(job.status)
        if current not in allowed_from:
            raise InvalidJobTransitionError(job.id, current.value, target.value)


# Fields refreshed when a comparable's natural key already exists
UPDATABLE_FIELDS = (
    'rent_psf',
    'rent_pu',
    'occupancy_pct',
    'concession_pct',
    'notes',
    'source',
    'source_url',
    'scraped_at',
    'job_id',
)

NATURAL_KEY = ['canonical_address', 'unit_plan']


class ComparableRepository(BaseRepository):
    """
    Repository for Comparable with natural-key upsert.

    PostgreSQL and SQLite use INSERT ... ON CONFLICT DO UPDATE so the store
    arbitrates concurrent writers; other dialects select then merge.
    """

    def __init__(self):
        super().__init__(Comparable)

    def get_by_natural_key(self, session: Session, canonical_address: str, unit_plan: str = '') -> Optional[Comparable]:
        query = select(Comparable).where(
            Comparable.canonical_address == canonical_address,
            Comparable.unit_plan == unit_plan,
        )
        return session.execute(query).scalar_one_or_none()

    def upsert(
        self,
        session: Session,
        record: NormalizedRecord,
        job_id: Optional[str] = None,
        scraped_at: Optional[datetime] = None,
    ) -> Tuple[Comparable, bool]:
        """
        Insert a comparable, or merge market fields into the existing row.

        On conflict only the market fields, provenance and updated_at change;
        id and created_at are kept. Amenity tags are replaced only by a
        non-empty list.

        Args:
            session: Database session
            record: Normalized record with a canonical address
            job_id: Job writing the row
            scraped_at: Scrape timestamp (defaults to now)

        Returns:
            Tuple of (Comparable instance, True if inserted)
        """
        if not record.canonical_address:
            raise ValueError("canonical_address is required for upsert")

        row = record.to_row()
        row['job_id'] = job_id
        row['scraped_at'] = scraped_at or utcnow()

        existing_id = session.scalar(
            select(Comparable.id).where(
                Comparable.canonical_address == record.canonical_address,
                Comparable.unit_plan == record.unit_plan,
            )
        )

        dialect = session.get_bind().dialect.name
        if dialect in ('postgresql', 'sqlite'):
            self._upsert_on_conflict(session, row, dialect)
        else:
            self._upsert_merge(session, row)

        comparable = session.execute(
            select(Comparable)
            .where(
                Comparable.canonical_address == record.canonical_address,
                Comparable.unit_plan == record.unit_plan,
            )
            .execution_options(populate_existing=True)
        ).scalar_one()

        created = existing_id is None
        logger.debug(
            "comparable_upserted",
            canonical_address=record.canonical_address,
            unit_plan=record.unit_plan,
            created=created,
        )
        return comparable, created

    def _upsert_on_conflict(self, session: Session, row: Dict[str, Any], dialect: str):
        insert = postgresql.insert if dialect == 'postgresql' else sqlite.insert
        now = utcnow()
        values = {**row, 'created_at': now, 'updated_at': now}

        stmt = insert(Comparable).values(**values)
        set_ = {field: getattr(stmt.excluded, field) for field in UPDATABLE_FIELDS}
        set_['amenity_tags'] = func.coalesce(stmt.excluded.amenity_tags, Comparable.amenity_tags)
        set_['updated_at'] = now
        stmt = stmt.on_conflict_do_update(index_elements=NATURAL_KEY, set_=set_)

        session.execute(stmt)
        session.flush()

    def _upsert_merge(self, session: Session, row: Dict[str, Any]):
        existing = self.get_by_natural_key(session, row['canonical_address'], row['unit_plan'])
        if existing is None:
            session.add(Comparable(**row))
        else:
            for field in UPDATABLE_FIELDS:
                setattr(existing, field, row[field])
            if row['amenity_tags']:
                existing.amenity_tags = row['amenity_tags']
            existing.updated_at = utcnow()
        session.flush()

    def search(
        self,
        session: Session,
        q: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Comparable]:
        """
        Search comparables by free text.

        Args:
            session: Database session
            q: Case-insensitive substring matched against canonical address and name
            limit: Maximum rows (capped by settings)
            offset: Rows to skip

        Returns:
            Comparables, most recently updated first
        """
        limit = max(1, min(limit, settings.comparables_max_page_size))
        query = _text_filter(select(Comparable), q)
        query = query.order_by(desc(Comparable.updated_at), desc(Comparable.id)).offset(offset).limit(limit)

        results = list(session.execute(query).scalars().all())
        logger.debug("comparables_searched", q=q, results=len(results), limit=limit, offset=offset)
        return results

    def count_matching(self, session: Session, q: Optional[str] = None) -> int:
        """Count comparables matching the same filter as :meth:`search`."""
        return session.scalar(_text_filter(select(func.count()).select_from(Comparable), q))


def _text_filter(query, q: Optional[str]):
    if not q or not q.strip():
        return query
    pattern = f"%{q.strip().lower()}%"
    return query.where(
        or_(
            func.lower(Comparable.canonical_address).like(pattern),
            func.lower(Comparable.name).like(pattern),
        )
    )
