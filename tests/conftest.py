"""
Shared pytest fixtures.

Persistence tests run against an in-memory SQLite database shared by every
session through a single static connection.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.compscraper.db.base import Base
from src.compscraper.db import models  # noqa: F401
from src.compscraper.models.records import RawRecord
from src.compscraper.scrapers.base import AdapterResult, SourceAdapter


@pytest.fixture(scope="function")
def test_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory bound to the test database."""
    return sessionmaker(bind=test_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Database session for a single test."""
    session = session_factory()

    yield session

    session.close()


class StaticAdapter(SourceAdapter):
    """
    In-memory adapter returning canned records.

    ``error`` is raised instead of returning; ``block`` is an Event waited on
    before answering, to simulate a hanging source.
    """

    def __init__(self, name, tier, records=(), caveats=(), error=None, block=None, timeout=5.0):
        super().__init__(timeout=timeout)
        self.name = name
        self.tier = tier
        self.records = list(records)
        self.caveats = list(caveats)
        self.error = error
        self.block = block
        self.calls = 0

    def search(self, query):
        self.calls += 1
        if self.block is not None:
            self.block.wait(10)
        if self.error is not None:
            raise self.error
        records = []
        for item in self.records:
            record = RawRecord.model_validate(item)
            if record.source is None:
                record = record.model_copy(update={'source': self.name})
            records.append(record)
        return AdapterResult(records=records, caveats=list(self.caveats))


@pytest.fixture
def static_adapter():
    """Factory for StaticAdapter instances."""
    return StaticAdapter
