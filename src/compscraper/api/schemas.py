"""
Pydantic Schemas for API Request/Response Models

These schemas define the JSON structure for API endpoints. Job creation takes
a ScrapeQuery body and job reads return JobSnapshot directly.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ComparableOut(BaseModel):
    """Stored comparable."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    asset_type: str
    units: Optional[int] = None
    year_built: Optional[int] = None
    rent_psf: Optional[float] = None
    rent_pu: Optional[float] = None
    occupancy_pct: Optional[float] = None
    concession_pct: Optional[float] = None
    amenity_tags: List[str] = []
    notes: Optional[str] = None
    source: str
    source_url: Optional[str] = None
    canonical_address: str
    unit_plan: str
    job_id: Optional[str] = None
    scraped_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ComparableList(BaseModel):
    """Page of comparables."""
    items: List[ComparableOut]
    total: int
    limit: int
    offset: int


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    version: str
    database: str
    timestamp: datetime
