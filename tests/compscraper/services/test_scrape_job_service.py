"""
Unit tests for the scrape job service
"""
import pytest
from pydantic import ValidationError

from src.compscraper.models.job import JobStatus
from src.compscraper.pipelines.runner import PipelineRunner
from src.compscraper.pipelines.scrape_agent import ScrapeAgent
from src.compscraper.scrapers.base import SourceTier
from src.compscraper.scrapers.heuristic_generator import HeuristicAdapter
from src.compscraper.services.scrape_jobs import ScrapeJobService


@pytest.fixture
def service(session_factory, static_adapter):
    agent = ScrapeAgent([
        static_adapter("primary", SourceTier.PRIMARY, records=[{
            "name": "Oak Apartments",
            "address": "123 Main Street",
            "units": 150,
            "rent": "$1,800",
        }]),
        HeuristicAdapter(),
    ])
    service = ScrapeJobService(
        session_factory=session_factory,
        runner=PipelineRunner(session_factory=session_factory, agent=agent),
        max_workers=1,
    )
    yield service
    service.shutdown()


class TestScrapeJobService:
    """Tests for ScrapeJobService"""

    def test_create_and_read(self, service):
        """Test created jobs read back as queued snapshots"""
        job_id = service.create_job({"address": "123 Main St, Nashville, TN", "amenities": "pool"})

        snapshot = service.get_job(job_id)

        assert snapshot.id == job_id
        assert snapshot.status == JobStatus.QUEUED
        assert snapshot.query["amenities"] == ["pool"]
        assert snapshot.query["radius_mi"] == 5
        assert snapshot.started_at is None

    def test_invalid_query_rejected(self, service):
        """Test queries are validated before a job is stored"""
        with pytest.raises(ValidationError):
            service.create_job({"address": ""})
        assert service.list_jobs() == []

    def test_missing_job(self, service):
        """Test unknown ids read as None"""
        assert service.get_job("missing") is None

    def test_create_and_run(self, service):
        """Test synchronous runs return the terminal snapshot"""
        snapshot = service.create_and_run({"address": "123 Main St, Nashville, TN"})

        assert snapshot.status == JobStatus.SUCCEEDED
        assert snapshot.is_terminal
        assert snapshot.records_inserted == 1

    def test_submit_job_runs_in_background(self, service):
        """Test submitted jobs complete on the worker pool"""
        job_id = service.create_job({"address": "123 Main St, Nashville, TN"})

        result = service.submit_job(job_id).result(timeout=30)

        assert result.status == JobStatus.SUCCEEDED
        assert service.get_job(job_id).status == JobStatus.SUCCEEDED

    def test_list_jobs(self, service):
        """Test jobs are listed"""
        first = service.create_job({"address": "1 Oak St"})
        second = service.create_job({"address": "2 Elm St"})
        assert {job.id for job in service.list_jobs()} == {first, second}
        assert len(service.list_jobs(limit=1)) == 1

    def test_search_comparables(self, service):
        """Test stored comparables are searchable as plain dicts"""
        service.create_and_run({"address": "123 Main St, Nashville, TN"})

        page = service.search_comparables(q="main st")

        assert page['total'] == 1
        item = page['items'][0]
        assert item['canonical_address'] == "123 main st, nashville, tn"
        assert item['unit_plan'] == "150u|$1800pu"
        assert item['amenity_tags'] == []
        assert service.search_comparables(q="atlanta") == {'items': [], 'total': 0}
