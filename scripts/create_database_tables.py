"""
Create Database Tables Using SQLAlchemy

This script creates all database tables directly using SQLAlchemy's create_all()
method. This bypasses Alembic migrations and is useful for testing and local
development.
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import sqlalchemy as sa

from src.compscraper.db.session import create_all_tables, drop_all_tables, get_engine
from src.compscraper.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    parser = argparse.ArgumentParser(description="Create comparable scrape tables")
    parser.add_argument(
        '--drop',
        action='store_true',
        help='Drop existing tables first (deletes all data)'
    )
    args = parser.parse_args()

    setup_logging()
    engine = get_engine()

    if args.drop:
        drop_all_tables(engine)

    create_all_tables(engine)

    tables = sa.inspect(engine).get_table_names()
    logger.info("tables_verified", count=len(tables), tables=sorted(tables))


if __name__ == "__main__":
    main()
