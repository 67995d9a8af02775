"""
Scrape Pipeline Runner

Drives one scrape job end to end:
mark running -> scrape agent -> normalize -> dedupe -> upsert -> mark terminal.

Each step uses its own short transaction so progress is visible to job status
reads while the job is running.
"""
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session
from structlog.contextvars import bound_contextvars

from config.settings import settings
from src.compscraper.db.repository import ScrapeJobRepository
from src.compscraper.db.session import SessionLocal, get_engine, session_scope
from src.compscraper.etl.loaders import ComparableLoader
from src.compscraper.exceptions import truncate_error
from src.compscraper.models.job import JobStatus
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.models.records import NormalizedRecord, RawRecord
from src.compscraper.pipelines.deduplication import ComparableDeduplicator
from src.compscraper.pipelines.scrape_agent import AgentResult, ScrapeAgent
from src.compscraper.scrapers import build_default_adapters
from src.compscraper.scrapers.base import SourceTier
from src.compscraper.transformers.normalizer import RecordNormalizer
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """Summary of one runner invocation."""

    job_id: str
    status: JobStatus
    records_inserted: int = 0
    source: Optional[SourceTier] = None
    caveats: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None


class PipelineRunner:
    """
    Runs scrape jobs through the full pipeline.

    A job that is missing or not queued raises before anything is written.
    Once the job is running, any exception escaping a stage moves it to
    failed with the truncated exception text; otherwise it ends succeeded,
    including when no records were found.

    Invoking the runner twice concurrently for one job id is a caller error;
    the second invocation fails the queued check.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        agent: Optional[ScrapeAgent] = None,
        normalizer: Optional[RecordNormalizer] = None,
        deduplicator: Optional[ComparableDeduplicator] = None,
        loader: Optional[ComparableLoader] = None,
        job_repository: Optional[ScrapeJobRepository] = None,
        error_max_length: Optional[int] = None,
    ):
        if session_factory is None:
            get_engine()
            session_factory = SessionLocal

        self.session_factory = session_factory
        self.agent = agent or ScrapeAgent(build_default_adapters())
        self.normalizer = normalizer or RecordNormalizer()
        self.deduplicator = deduplicator or ComparableDeduplicator()
        self.loader = loader or ComparableLoader()
        self.jobs = job_repository or ScrapeJobRepository()
        self.error_max_length = error_max_length or settings.job_error_max_length

    def run(self, job_id: str, cancel_event: Optional[threading.Event] = None) -> PipelineResult:
        """
        Drive one job to a terminal state.

        Args:
            job_id: Queued job to run
            cancel_event: Optional signal that abandons pending adapter calls

        Returns:
            PipelineResult describing the terminal state

        Raises:
            JobNotFoundError: No job with this id
            InvalidJobTransitionError: Job is not queued
        """
        with bound_contextvars(job_id=job_id):
            with session_scope(self.session_factory) as session:
                job = self.jobs.mark_running(session, job_id)
                query_payload = dict(job.query or {})
                started_at = job.started_at

            logger.info("pipeline_started")
            try:
                return self._execute(job_id, query_payload, started_at, cancel_event)
            except Exception as e:
                error = truncate_error(e, self.error_max_length)
                logger.error("pipeline_failed", error=error, error_type=type(e).__name__)
                self._record_failure(job_id, error)
                return PipelineResult(job_id=job_id, status=JobStatus.FAILED, error=error)

    def _execute(self, job_id: str, query_payload: Dict[str, Any], started_at, cancel_event) -> PipelineResult:
        query = ScrapeQuery.model_validate(query_payload)

        self._progress(job_id, stage='scraping', percent=10)
        agent_result = self.agent.run(query, cancel_event=cancel_event)
        caveats = list(agent_result.caveats)

        self._progress(job_id, stage='normalizing', percent=50, raw_records=len(agent_result.records))
        normalized = self._normalize(agent_result, query)

        keyed = [record for record in normalized if record.has_address()]
        dropped = len(normalized) - len(keyed)
        if dropped:
            caveats.append(f"Dropped {dropped} records without an address")

        unique = self.deduplicator.dedupe(keyed)

        self._progress(job_id, stage='persisting', percent=75, unique_records=len(unique))
        with session_scope(self.session_factory) as session:
            stats = self.loader.bulk_load(session, unique, job_id=job_id, scraped_at=started_at)

        error = None
        if stats['errors']:
            error = truncate_error('; '.join(stats['errors']), self.error_max_length)

        meta = {
            'stage': 'completed',
            'percent': 100,
            'source': agent_result.source.value if agent_result.source else None,
            'adapter': agent_result.adapter_name,
            'attempts': agent_result.attempts,
            'caveats': caveats,
            'raw_records': len(agent_result.records),
            'unique_records': len(unique),
            'inserted': stats['inserted'],
            'updated': stats['updated'],
            'failed': stats['failed'],
        }
        with session_scope(self.session_factory) as session:
            self.jobs.mark_succeeded(session, job_id, records_inserted=stats['written'], meta=meta, error=error)

        logger.info(
            "pipeline_succeeded",
            source=meta['source'],
            records_inserted=stats['written'],
            caveats=len(caveats),
        )
        return PipelineResult(
            job_id=job_id,
            status=JobStatus.SUCCEEDED,
            records_inserted=stats['written'],
            source=agent_result.source,
            caveats=caveats,
            errors=list(stats['errors']),
            error=error,
        )

    def _normalize(self, agent_result: AgentResult, query: ScrapeQuery) -> List[NormalizedRecord]:
        """Normalize agent records, filling a missing city/state from the query."""
        locality = query.locality()
        normalized = []
        for raw in agent_result.records:
            if not isinstance(raw, RawRecord):
                raw = RawRecord.model_validate(raw)
            normalized.append(self.normalizer.normalize(raw.with_locality(locality.city, locality.state)))
        return normalized

    def _progress(self, job_id: str, **fields):
        with session_scope(self.session_factory) as session:
            self.jobs.update_meta(session, job_id, **fields)

    def _record_failure(self, job_id: str, error: str):
        try:
            with session_scope(self.session_factory) as session:
                self.jobs.mark_failed(session, job_id, error, meta={'stage': 'failed'})
        except Exception as e:
            logger.error("job_failure_not_recorded", error=str(e), error_type=type(e).__name__)
            raise
