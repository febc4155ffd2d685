"""Seed the default store data for the Staff Roster API.

Creates the default store, system roles, task catalogue and the Morning and
Evening shift definitions when they are missing, and optionally a first
Store Manager account. Safe to run repeatedly.

Usage:
    python seed_data.py
    python seed_data.py --admin-email manager@example.com --admin-password 'changeme123'
"""

import argparse
import logging
import sys

from staff_roster.core.config import settings
from staff_roster.db.base import Base
from staff_roster.db.session import SessionLocal, engine
import staff_roster.models  # noqa: F401
from staff_roster.services.seed_service import seed_defaults

logger = logging.getLogger("seed")


def seed(admin_email=None, admin_password=None, create_tables=False) -> int:
    if create_tables:
        Base.metadata.create_all(bind=engine)
        print("Database tables created.")

    db = SessionLocal()
    try:
        store = seed_defaults(db, admin_email=admin_email, admin_password=admin_password)
        print(f"Default data ready for store #{store.id} ({store.name}).")
    except Exception as e:
        db.rollback()
        print(f"Error seeding data: {e}")
        raise
    finally:
        db.close()
    return 0


def main():
    parser = argparse.ArgumentParser(description="Seed default roles, tasks and shifts")
    parser.add_argument('--admin-email', type=str, default=settings.initial_admin_email,
                        help="Email of the first Store Manager (created only if the store has none)")
    parser.add_argument('--admin-password', type=str, default=settings.initial_admin_password,
                        help="Password of the first Store Manager")
    parser.add_argument('--create-tables', action='store_true',
                        help="Create tables directly instead of running Alembic migrations")

    args = parser.parse_args()

    if bool(args.admin_email) != bool(args.admin_password):
        print("ERROR: --admin-email and --admin-password must be given together")
        return 2
    if args.admin_password and len(args.admin_password) < 8:
        print("ERROR: The admin password must be at least 8 characters")
        return 2

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    return seed(args.admin_email, args.admin_password, create_tables=args.create_tables)


if __name__ == "__main__":
    sys.exit(main())
