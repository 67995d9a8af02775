"""
Declarative Base, Column Types and Mixins

Shared by the scrape_jobs and comparables tables.
"""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


# JSONB on PostgreSQL, generic JSON elsewhere; Python None is stored as SQL NULL
JSONType = JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql")


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for the pipeline's tables."""

    id: Any


class TimestampMixin:
    """
    created_at / updated_at columns.

    Values are assigned in Python so instances read them back without a
    refresh; the server defaults cover rows written by raw SQL upserts.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        comment="Row creation time"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
        comment="Last write time"
    )


def import_all_models():
    """Register every model on Base.metadata (needed before create_all or autogenerate)."""
    from src.compscraper.db import models  # noqa: F401
