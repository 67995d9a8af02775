"""
Scrape Job Models

Job status state machine and the read model returned by job status reads.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    """
    Canonical job states: queued -> running -> succeeded | failed.
    """

    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)

    @classmethod
    def parse(cls, value: Union[str, "JobStatus"]) -> "JobStatus":
        """
        Parse a stored status, collapsing legacy synonyms.

        ``done``/``completed`` map to SUCCEEDED and ``error`` to FAILED.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        synonyms = {
            "done": cls.SUCCEEDED,
            "completed": cls.SUCCEEDED,
            "success": cls.SUCCEEDED,
            "error": cls.FAILED,
            "failure": cls.FAILED,
        }
        if normalized in synonyms:
            return synonyms[normalized]
        return cls(normalized)


class JobSnapshot(BaseModel):
    """Point-in-time view of a scrape job."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    status: JobStatus
    query: Dict[str, Any]
    meta: Optional[Dict[str, Any]] = Field(None, description="Advisory progress payload")
    error: Optional[str] = None
    records_inserted: int = 0
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value):
        if isinstance(value, JobStatus):
            return value
        return JobStatus.parse(value)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal
