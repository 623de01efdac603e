#!/usr/bin/env python3
"""
Create the Ammex schema and seed reference data

- Creates every table declared in ammex.models (existing tables are left alone)
- Seeds the default customer tiers when the tiers table is empty
- Creates the first Admin account when --admin-email is given

Author: Ammex Dev Team
Date: 2025-03-20

Usage:
    export DATABASE_URL="postgresql://..."
    python3 backend/scripts/init_db.py --admin-email admin@ammex.com --admin-password secret123
"""
import argparse
import logging
import sys

from ammex import models  # noqa: F401  registers tables on Base.metadata
from ammex.core.database import Base, engine
from ammex.core.logging_config import configure_logging
from ammex.services.account_service import AccountService
from ammex.services.tier_service import TierService

logger = logging.getLogger("init_db")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Create the Ammex schema and seed data")
    parser.add_argument("--admin-name", default="Administrator")
    parser.add_argument("--admin-email", help="Email of the first Admin account")
    parser.add_argument("--admin-password", help="Password of the first Admin account")
    parser.add_argument("--skip-schema", action="store_true", help="Only seed data")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    configure_logging()
    args = parse_args(argv)

    if not args.skip_schema:
        logger.info("Creating tables...")
        Base.metadata.create_all(bind=engine)
        logger.info(f"Schema ready: {len(Base.metadata.tables)} tables")

    tiers = TierService().ensure_defaults()
    logger.info(f"Tiers: {', '.join(t.name for t in tiers)}")

    if args.admin_email:
        if not args.admin_password or len(args.admin_password) < 6:
            logger.error("--admin-password must be at least 6 characters")
            return 1
        admin = AccountService().ensure_admin(args.admin_name, args.admin_email, args.admin_password)
        logger.info(f"Admin account: {admin.email} (id {admin.id})")

    return 0


if __name__ == "__main__":
    sys.exit(main())
