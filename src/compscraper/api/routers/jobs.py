"""
Scrape Jobs Router

Endpoints for creating, running and reading scrape jobs.
"""
from enum import Enum
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.compscraper.api.dependencies import get_job_service
from src.compscraper.exceptions import InvalidJobTransitionError, JobNotFoundError
from src.compscraper.models.job import JobSnapshot, JobStatus
from src.compscraper.models.query import ScrapeQuery
from src.compscraper.services.scrape_jobs import ScrapeJobService

router = APIRouter(prefix="/api/v1/scrape-jobs", tags=["scrape-jobs"])


class RunMode(str, Enum):
    """How a job is executed after creation."""
    SYNC = "sync"
    BACKGROUND = "background"
    NONE = "none"


@router.post("", response_model=JobSnapshot, status_code=status.HTTP_201_CREATED)
def create_scrape_job(
    query: ScrapeQuery,
    run: RunMode = Query(RunMode.BACKGROUND, description="sync, background or none"),
    service: ScrapeJobService = Depends(get_job_service),
):
    """
    Create a scrape job.

    Args:
        query: Ground-zero address and filters
        run: ``sync`` waits for the terminal state, ``background`` queues it
            on the worker pool, ``none`` only creates it

    Returns:
        Job snapshot
    """
    if run == RunMode.SYNC:
        return service.create_and_run(query)

    job_id = service.create_job(query)
    if run == RunMode.BACKGROUND:
        service.submit_job(job_id)
    return service.get_job(job_id)


@router.get("", response_model=List[JobSnapshot])
def list_scrape_jobs(
    limit: int = Query(20, ge=1, le=100),
    service: ScrapeJobService = Depends(get_job_service),
):
    """List the most recent scrape jobs."""
    return service.list_jobs(limit=limit)


@router.get("/{job_id}", response_model=JobSnapshot)
def get_scrape_job(job_id: str, service: ScrapeJobService = Depends(get_job_service)):
    """
    Get a scrape job's status.

    Raises:
        HTTPException: 404 if job not found
    """
    snapshot = service.get_job(job_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Scrape job not found: {job_id}")
    return snapshot


@router.post("/{job_id}/run", response_model=JobSnapshot, status_code=status.HTTP_202_ACCEPTED)
def run_scrape_job(
    job_id: str,
    run: RunMode = Query(RunMode.BACKGROUND, description="sync or background"),
    service: ScrapeJobService = Depends(get_job_service),
):
    """
    Run a queued scrape job.

    Raises:
        HTTPException: 404 if job not found, 409 if the job is not queued
    """
    snapshot = service.get_job(job_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail=f"Scrape job not found: {job_id}")
    if snapshot.status != JobStatus.QUEUED:
        raise HTTPException(
            status_code=409,
            detail=f"Scrape job {job_id} is {snapshot.status.value}, not queued",
        )

    if run == RunMode.BACKGROUND:
        service.submit_job(job_id)
        return service.get_job(job_id)

    try:
        service.run_job(job_id)
    except JobNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidJobTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return service.get_job(job_id)
