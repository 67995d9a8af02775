"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.compscraper.db.base import Base
from src.compscraper.db.session import (
    SessionLocal,
    build_engine,
    get_engine,
    session_scope,
    close_connections,
    create_all_tables,
    drop_all_tables,
)
from src.compscraper.db.models import ScrapeJob, Comparable
from src.compscraper.db.repository import (
    BaseRepository,
    ScrapeJobRepository,
    ComparableRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "SessionLocal",
    "build_engine",
    "get_engine",
    "session_scope",
    "close_connections",
    "create_all_tables",
    "drop_all_tables",
    # Models
    "ScrapeJob",
    "Comparable",
    # Repositories
    "BaseRepository",
    "ScrapeJobRepository",
    "ComparableRepository",
]
