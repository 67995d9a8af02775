"""
Comparables Router

Search over stored comparables.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from config.settings import settings
from src.compscraper.api.dependencies import get_job_service
from src.compscraper.api.schemas import ComparableList
from src.compscraper.services.scrape_jobs import ScrapeJobService

router = APIRouter(prefix="/api/v1/comparables", tags=["comparables"])


@router.get("", response_model=ComparableList)
def search_comparables(
    q: Optional[str] = Query(None, description="Substring of the address or property name"),
    limit: int = Query(100, ge=1, le=settings.comparables_max_page_size),
    offset: int = Query(0, ge=0),
    service: ScrapeJobService = Depends(get_job_service),
):
    """
    Search stored comparables, most recently updated first.

    Args:
        q: Case-insensitive free-text filter
        limit: Page size
        offset: Rows to skip

    Returns:
        Page of comparables with the total matching count
    """
    page = service.search_comparables(q=q, limit=limit, offset=offset)
    return ComparableList(items=page['items'], total=page['total'], limit=limit, offset=offset)
