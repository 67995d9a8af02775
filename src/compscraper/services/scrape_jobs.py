"""
Scrape Job Service

Entry points for creating, running and reading scrape jobs, shared by the
HTTP API and the command-line script.
"""
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from config.settings import settings
from src.compscraper.db.repository import ComparableRepository, ScrapeJobRepository
from src.compscraper.db.session import SessionLocal, get_engine, session_scope
from src.compscraper.models.job import JobSnapshot
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.pipelines.runner import PipelineResult, PipelineRunner
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)


class ScrapeJobService:
    """
    Job creation, execution and status reads.

    Jobs run either synchronously in the caller's thread or on a bounded
    background worker pool.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        runner: Optional[PipelineRunner] = None,
        max_workers: Optional[int] = None,
    ):
        if session_factory is None:
            get_engine()
            session_factory = SessionLocal

        self.session_factory = session_factory
        self.runner = runner or PipelineRunner(session_factory=session_factory)
        self.jobs = ScrapeJobRepository()
        self.comparables = ComparableRepository()
        self._max_workers = max_workers or settings.worker_max_workers
        self._executor: Optional[ThreadPoolExecutor] = None

    def create_job(self, query: Union[ScrapeQuery, Dict[str, Any]]) -> str:
        """
        Persist a new queued job.

        Args:
            query: ScrapeQuery or a mapping validated into one

        Returns:
            Job id
        """
        if not isinstance(query, ScrapeQuery):
            query = ScrapeQuery.model_validate(query)

        with session_scope(self.session_factory) as session:
            job = self.jobs.create_job(session, query)
            return job.id

    def get_job(self, job_id: str) -> Optional[JobSnapshot]:
        """
        Read a job's current state.

        Returns:
            JobSnapshot, or None when no job has this id
        """
        with session_scope(self.session_factory) as session:
            job = self.jobs.get_job(session, job_id)
            if job is None:
                return None
            return JobSnapshot.model_validate(job)

    def list_jobs(self, limit: int = 20) -> List[JobSnapshot]:
        with session_scope(self.session_factory) as session:
            return [JobSnapshot.model_validate(job) for job in self.jobs.get_recent_jobs(session, limit=limit)]

    def run_job(self, job_id: str) -> PipelineResult:
        """Run a queued job to completion in the calling thread."""
        return self.runner.run(job_id)

    def create_and_run(self, query: Union[ScrapeQuery, Dict[str, Any]]) -> JobSnapshot:
        """
        Create a job, run it synchronously and return its terminal snapshot.
        """
        job_id = self.create_job(query)
        self.run_job(job_id)
        return self.get_job(job_id)

    def submit_job(self, job_id: str) -> Future:
        """
        Run a queued job on the background worker pool.

        Returns:
            Future resolving to the PipelineResult
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="scrape-worker",
            )

        future = self._executor.submit(self.runner.run, job_id)
        future.add_done_callback(lambda f: self._log_background_result(job_id, f))
        logger.info("scrape_job_submitted", job_id=job_id)
        return future

    def search_comparables(self, q: Optional[str] = None, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """
        Search stored comparables.

        Returns:
            Dict with ``items`` (list of row dicts) and ``total`` matching count
        """
        with session_scope(self.session_factory) as session:
            rows = self.comparables.search(session, q=q, limit=limit, offset=offset)
            total = self.comparables.count_matching(session, q=q)
            items = [_comparable_to_dict(row) for row in rows]
        return {'items': items, 'total': total}

    def shutdown(self, wait: bool = True):
        """Stop the background worker pool."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
            logger.info("scrape_job_workers_stopped")

    @staticmethod
    def _log_background_result(job_id: str, future: Future):
        exc = future.exception()
        if exc is not None:
            logger.error(
                "background_scrape_job_failed",
                job_id=job_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )


def _comparable_to_dict(row) -> Dict[str, Any]:
    return {
        'id': row.id,
        'name': row.name,
        'address': row.address,
        'city': row.city,
        'state': row.state,
        'zip_code': row.zip_code,
        'asset_type': row.asset_type,
        'units': row.units,
        'year_built': row.year_built,
        'rent_psf': row.rent_psf,
        'rent_pu': row.rent_pu,
        'occupancy_pct': row.occupancy_pct,
        'concession_pct': row.concession_pct,
        'amenity_tags': list(row.amenity_tags or []),
        'notes': row.notes,
        'source': row.source,
        'source_url': row.source_url,
        'canonical_address': row.canonical_address,
        'unit_plan': row.unit_plan,
        'job_id': row.job_id,
        'scraped_at': row.scraped_at,
        'created_at': row.created_at,
        'updated_at': row.updated_at,
    }
