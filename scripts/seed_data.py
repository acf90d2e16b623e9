"""
Sample Data Seeder
Populates the configured database (DATABASE_URL) with sample courses,
mock tests and questions, plus an optional demo account.

Usage:
    python scripts/seed_data.py
    python scripts/seed_data.py --demo-user demo --demo-password demo1234
"""

import argparse
import logging

from sqlmodel import Session

from mocktest.auth_utils import hash_password
from mocktest.database import create_db_and_tables, engine
from mocktest.logging_config import setup_logging
from mocktest.models import User
from mocktest.seed import seed_sample_data
from mocktest.storage import SqlStorage

logger = logging.getLogger("mocktest.scripts.seed_data")


def seed_database(demo_user=None, demo_password=None):
    """Create tables and insert sample data if the catalog is empty."""
    create_db_and_tables()

    with Session(engine) as session:
        storage = SqlStorage(session)
        if seed_sample_data(storage):
            logger.info("Sample catalog created")
        else:
            logger.info("Database already contains catalog data. Skipping seed.")

        if demo_user and demo_password:
            if storage.get_user_by_username(demo_user):
                logger.info("Demo user %r already exists", demo_user)
            else:
                storage.create_user(
                    User(username=demo_user, password_hash=hash_password(demo_password))
                )
                logger.info("Created demo user %r", demo_user)


def main():
    parser = argparse.ArgumentParser(description="Seed the mock test database")
    parser.add_argument("--demo-user", default=None)
    parser.add_argument("--demo-password", default=None)
    args = parser.parse_args()

    setup_logging()
    seed_database(args.demo_user, args.demo_password)


if __name__ == "__main__":
    main()
