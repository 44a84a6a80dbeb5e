"""
Create Database Tables Using SQLAlchemy

Creates the HUBZone tables directly with create_all(), bypassing Alembic.
Useful for local development and test databases.

Usage:
    python scripts/create_database_tables.py [--reset]
"""
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import argparse

import sqlalchemy as sa

from src.hubzone.db.base import Base, import_all_models
from src.hubzone.db.session import engine
from src.hubzone.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    parser = argparse.ArgumentParser(description="Create HUBZone database tables")
    parser.add_argument(
        '--reset',
        action='store_true',
        help='Drop existing HUBZone tables before creating them'
    )
    args = parser.parse_args()

    setup_logging()
    logger.info("database_table_creation_started")

    with engine.connect() as conn:
        conn.execute(sa.text("CREATE EXTENSION IF NOT EXISTS postgis"))
        conn.commit()

    import_all_models()

    if args.reset:
        logger.warning("dropping_existing_tables", tables=sorted(Base.metadata.tables))
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine, checkfirst=True)

    inspector = sa.inspect(engine)
    tables = [name for name in inspector.get_table_names() if name in Base.metadata.tables]
    logger.info("database_tables_created", count=len(tables), tables=sorted(tables))


if __name__ == "__main__":
    main()
