#!/usr/bin/env python3
"""
Initialize the library circulation database.

This script:
1. Creates all database tables
2. Stores default values for every circulation setting
3. Optionally loads Faker-generated demo data

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from library_circulation.database import atomic, get_db_manager
from library_circulation.database.schema import Base
from library_circulation.database.settings_repository import SettingsRepository
from library_circulation.seed import is_empty, seed_database

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Initialize the library circulation database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load demo books, members and loans after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    parser.add_argument("--books", type=int, default=25, help="Demo books to create")
    parser.add_argument("--members", type=int, default=12, help="Demo members to create")
    parser.add_argument("--loans", type=int, default=10, help="Demo loans to attempt")

    args = parser.parse_args()

    logger.info("Initializing database manager...")
    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        logger.info("Creating database schema...")
        db_manager.init_database(drop_existing=args.drop_existing)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing_tables = set(Base.metadata.tables) - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            sys.exit(1)
        logger.info("Created tables: %s", ", ".join(sorted(tables)))

        with db_manager.session_scope() as session:
            with atomic(session, "seed settings"):
                added = SettingsRepository(session).seed_defaults()
            logger.info("Stored %d default settings", added)

            if args.sample_data:
                if not is_empty(session):
                    logger.warning("Database already holds books; skipping sample data")
                else:
                    summary = seed_database(
                        session,
                        num_books=args.books,
                        num_members=args.members,
                        num_loans=args.loans,
                    )
                    logger.info(
                        "Sample data loaded: %d books, %d members, %d loans",
                        len(summary.book_ids),
                        len(summary.member_ids),
                        len(summary.loan_ids),
                    )

        logger.info("Database initialization complete")

    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
