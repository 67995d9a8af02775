"""
FastAPI Dependencies

Database session and scrape job service dependencies.
"""
from typing import Generator, Optional

from sqlalchemy.orm import Session

from src.compscraper.db.session import SessionLocal, get_engine
from src.compscraper.services.scrape_jobs import ScrapeJobService

_job_service: Optional[ScrapeJobService] = None


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields:
        SQLAlchemy database session
    """
    get_engine()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_job_service() -> ScrapeJobService:
    """
    Job service dependency (one shared instance per process).

    Returns:
        ScrapeJobService bound to the configured database
    """
    global _job_service
    if _job_service is None:
        _job_service = ScrapeJobService()
    return _job_service


def shutdown_job_service():
    """Stop background workers of the shared service, if it was created."""
    global _job_service
    if _job_service is not None:
        _job_service.shutdown(wait=False)
        _job_service = None
