"""
Database Models

SQLAlchemy ORM models for scrape jobs and stored comparables.
"""
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from src.compscraper.db.base import Base, JSONType, TimestampMixin


def _new_job_id() -> str:
    return str(uuid.uuid4())


class ScrapeJob(Base, TimestampMixin):
    """
    One comparable scrape job.

    Status moves queued -> running -> succeeded | failed. started_at is set
    once the job leaves queued; finished_at only once it is terminal.
    """
    __tablename__ = "scrape_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_job_id)

    # Input
    query: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        comment="Scrape query as submitted"
    )

    # Lifecycle
    status: Mapped[str] = mapped_column(
        String(20),
        default="queued",
        nullable=False,
        comment="Job status: queued, running, succeeded, failed"
    )
    meta: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Advisory progress payload (stage, percent, counts, caveats)"
    )
    error: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Truncated aggregated error text"
    )
    records_inserted: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Rows successfully written by this job"
    )

    # Timing
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Time the runner moved the job to running"
    )
    finished_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Time the job reached a terminal status"
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'running', 'succeeded', 'failed')",
            name="check_scrape_job_status_valid"
        ),
        CheckConstraint("records_inserted >= 0", name="check_records_inserted_non_negative"),
        Index("idx_scrape_jobs_status", "status"),
        Index("idx_scrape_jobs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ScrapeJob(id={self.id}, status={self.status}, records_inserted={self.records_inserted})>"


class Comparable(Base, TimestampMixin):
    """
    Stored comparable property.

    Identified by the natural key (canonical_address, unit_plan). Many jobs
    may touch the same row over time; job_id is the last one that did.
    """
    __tablename__ = "comparables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Natural key
    canonical_address: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        comment="Normalized comparison-ready address"
    )
    unit_plan: Mapped[str] = mapped_column(
        String(100),
        default="",
        server_default="",
        nullable=False,
        comment="Unit count / rent signature, e.g. 150u|$1.95psf|$1800pu"
    )

    # Property identity
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    asset_type: Mapped[str] = mapped_column(String(50), default="Multifamily", nullable=False)
    units: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Market fields (updated on conflict)
    rent_psf: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Rent per square foot")
    rent_pu: Mapped[Optional[float]] = mapped_column(Float, nullable=True, comment="Rent per unit")
    occupancy_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    concession_pct: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    amenity_tags: Mapped[Optional[List[str]]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Lowercase amenity tags; NULL when unknown"
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String(100), default="unknown", nullable=False)
    source_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Provenance
    job_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        ForeignKey("scrape_jobs.id", ondelete="SET NULL"),
        nullable=True,
        comment="Job that produced or last touched this row"
    )
    scraped_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("canonical_address", "unit_plan", name="uq_comparables_natural_key"),
        CheckConstraint(
            "occupancy_pct IS NULL OR (occupancy_pct >= 0 AND occupancy_pct <= 100)",
            name="check_occupancy_pct_range"
        ),
        CheckConstraint(
            "concession_pct IS NULL OR (concession_pct >= 0 AND concession_pct <= 100)",
            name="check_concession_pct_range"
        ),
        Index("idx_comparables_city_state", "city", "state"),
        Index("idx_comparables_job_id", "job_id"),
        Index("idx_comparables_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<Comparable(address={self.canonical_address}, unit_plan={self.unit_plan})>"
