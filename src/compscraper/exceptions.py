"""
Exception Types

Adapter failures are recoverable and never leave the scrape agent; job errors
signal lifecycle misuse or a missing job record.
"""
from typing import Any


class CompScraperError(Exception):
    """Base class for all pipeline errors."""


class AdapterError(CompScraperError):
    """
    A source adapter could not produce results.

    Attributes:
        adapter: Name of the adapter that failed
    """

    def __init__(self, adapter: str, message: str):
        super().__init__(message)
        self.adapter = adapter
        self.message = message

    def __str__(self) -> str:
        return self.message


class AdapterConfigurationError(AdapterError):
    """Adapter is missing credentials or target data; not retried."""


class TransientAdapterError(AdapterError):
    """Network failure, rate limit or server error; safe to retry."""


class QuotaExceededError(AdapterError):
    """Provider rejected the request for quota or authorization reasons."""


class MalformedResponseError(AdapterError):
    """Provider answered with a payload that could not be decoded."""


class AdapterTimeoutError(AdapterError):
    """Adapter did not answer within its bounded wait, or was cancelled."""


class JobNotFoundError(CompScraperError):
    """No scrape job exists with the requested id."""

    def __init__(self, job_id: str):
        super().__init__(f"Scrape job {job_id} not found")
        self.job_id = job_id


class InvalidJobTransitionError(CompScraperError):
    """A status write would break the queued -> running -> terminal lifecycle."""

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Scrape job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


def truncate_error(value: Any, limit: int = 2000) -> str:
    """
    Render an error (exception or text) bounded to ``limit`` characters.

    Never raises: an exception whose ``__str__`` fails is rendered by type name.

    Args:
        value: Exception instance or message
        limit: Maximum number of characters kept

    Returns:
        Truncated error text
    """
    try:
        if isinstance(value, BaseException):
            text = f"{type(value).__name__}: {value}"
        else:
            text = str(value)
    except Exception:
        text = type(value).__name__

    limit = max(int(limit), 0)
    if len(text) <= limit:
        return text
    return text[:limit]
