"""
Logging Configuration

Structured logging setup using structlog. Pipeline code binds ``job_id`` with
``structlog.contextvars`` so every event of one job run carries it.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

# Provider error bodies and page snippets can be arbitrarily long
MAX_VALUE_LENGTH = 1000

NOISY_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine", "httpx")


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to all log entries.
    """
    event_dict["service"] = "compscraper"
    event_dict["environment"] = settings.environment
    return event_dict


def cap_long_values(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Truncate oversized string values so one event stays one readable line."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_VALUE_LENGTH:
            event_dict[key] = value[:MAX_VALUE_LENGTH] + "..."
    return event_dict


def setup_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> structlog.BoundLogger:
    """
    Configure structured logging for the application.

    Args:
        level: Override for settings.log_level
        log_format: ``json`` or ``console``, overrides settings.log_format

    Returns:
        Configured structlog logger instance
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level, logging.INFO),
    )
    for name in NOISY_LOGGERS:
        if name == "sqlalchemy.engine" and settings.database_echo:
            continue
        logging.getLogger(name).setLevel(logging.WARNING)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        add_app_context,
        cap_long_values,
    ]

    if log_format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.processors.ExceptionRenderer())
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger()


def get_logger(name: str = None) -> structlog.BoundLogger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()
