"""
Bounded Retry Helper

Exponential backoff shared by every network adapter so retry policy is uniform
and testable without network code.
"""
import time
from functools import wraps
from typing import Any, Callable, Tuple, Type, TypeVar

from config.settings import settings
from src.compscraper.exceptions import TransientAdapterError
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before retry number ``attempt`` (1-based): base * 2^(attempt-1)."""
    return base_delay * (2 ** (attempt - 1))


def retry_call(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = None,
    base_delay: float = None,
    retry_on: Tuple[Type[BaseException], ...] = (TransientAdapterError,),
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """
    Call ``func`` retrying on transient failures.

    Args:
        func: Callable to invoke
        max_attempts: Total attempts including the first (defaults to settings)
        base_delay: Delay in seconds before the first retry (defaults to settings)
        retry_on: Exception types that trigger a retry; anything else propagates
        sleep: Sleep function, injectable for tests

    Returns:
        Whatever ``func`` returns

    Raises:
        The last exception once attempts are exhausted
    """
    if max_attempts is None:
        max_attempts = settings.retry_max_attempts
    if base_delay is None:
        base_delay = settings.retry_base_delay_seconds
    max_attempts = max(1, max_attempts)

    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except retry_on as e:
            if attempt >= max_attempts:
                logger.warning(
                    "retry_attempts_exhausted",
                    func=getattr(func, "__name__", repr(func)),
                    attempts=attempt,
                    error=str(e),
                )
                raise

            delay = backoff_delay(attempt, base_delay)
            logger.info(
                "retrying_after_failure",
                func=getattr(func, "__name__", repr(func)),
                attempt=attempt,
                max_attempts=max_attempts,
                delay_seconds=delay,
                error=str(e),
            )
            sleep(delay)
            attempt += 1


def with_backoff(
    max_attempts: int = None,
    base_delay: float = None,
    retry_on: Tuple[Type[BaseException], ...] = (TransientAdapterError,),
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator form of :func:`retry_call`.

    Usage:
        @with_backoff(max_attempts=3, base_delay=0.5)
        def fetch(url):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            return retry_call(
                func,
                *args,
                max_attempts=max_attempts,
                base_delay=base_delay,
                retry_on=retry_on,
                sleep=sleep,
                **kwargs,
            )

        return wrapper
    return decorator
