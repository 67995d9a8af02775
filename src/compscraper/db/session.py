"""
Database Session Management

Provides database connection pooling and session management. The engine is
created on first use so importing the package never opens a connection.
"""
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from sqlalchemy import create_engine, event, exc, pool
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.compscraper.utils.logger import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None

# Bound to the engine on first use
SessionLocal = sessionmaker(
    autoflush=False,
    expire_on_commit=False
)


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for a database URL.

    SQLite URLs get a thread-shareable connection (and a single static
    connection for in-memory databases); other URLs get the configured pool.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log SQL statements

    Returns:
        SQLAlchemy engine
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = pool.StaticPool
        engine = create_engine(database_url, echo=echo, **kwargs)
    else:
        engine = create_engine(
            database_url,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_timeout=settings.database_pool_timeout,
            pool_recycle=settings.database_pool_recycle,
            pool_pre_ping=True,  # Verify connections before using
            echo=echo,
        )

    event.listen(engine, "connect", _receive_connect)
    return engine


def _receive_connect(dbapi_conn, connection_record):
    """Log connection establishment."""
    logger.debug("database_connection_established")


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """Log pooled connections dropped after a driver error."""
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


def get_engine() -> Engine:
    """
    Get the shared engine, creating it from settings on first call.

    Returns:
        SQLAlchemy engine
    """
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database_url, echo=settings.database_echo)
        SessionLocal.configure(bind=_engine)
        logger.info("database_engine_created", dialect=_engine.dialect.name)
    return _engine


@contextmanager
def session_scope(factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """
    Transactional scope around a session from ``factory``.

    Commits on success, rolls back and re-raises on error, always closes.

    Usage:
        with session_scope(SessionLocal) as session:
            repo.create_job(session, query)

    Yields:
        Database session
    """
    session = factory()
    try:
        yield session
        session.commit()
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def close_connections():
    """
    Dispose of the shared engine, if one was created.

    The next get_engine() call builds a fresh engine and rebinds SessionLocal.
    """
    global _engine
    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    logger.info("database_engine_disposed")


def create_all_tables(engine: Optional[Engine] = None):
    """
    Create the scrape_jobs and comparables tables if missing.

    Alembic owns the schema in deployed databases; this serves local setup
    and SQLite runs.
    """
    from src.compscraper.db.base import Base, import_all_models

    logger.info("creating_database_tables")
    import_all_models()
    Base.metadata.create_all(bind=engine or get_engine())
    logger.info("database_tables_created")


def drop_all_tables(engine: Optional[Engine] = None):
    """Drop every table, deleting all jobs and comparables."""
    from src.compscraper.db.base import Base, import_all_models

    logger.warning("dropping_all_database_tables")
    import_all_models()
    Base.metadata.drop_all(bind=engine or get_engine())
    logger.warning("all_database_tables_dropped")
