"""Luxe Commerce ordering management CLI.

Usage:
    python src/manage.py setup-db        # Create tables (SQL providers only)
    python src/manage.py drop-db         # Drop tables
    python src/manage.py purge-carts     # Empty carts past their inactivity expiry
"""

import argparse
import sys

from ordering.domain import ordering


def setup_databases():
    from ordering.utils.db import setup_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Creating ordering database schema...")
    setup_db(ordering)
    print("Done.")


def drop_databases():
    from ordering.utils.db import drop_db

    print("Initializing ordering domain...")
    ordering.init()
    print("Dropping ordering database schema...")
    drop_db(ordering)
    print("Done.")


def purge_expired_carts() -> int:
    from ordering.cart.management import PurgeExpiredCarts

    ordering.init()
    with ordering.domain_context():
        purged = ordering.process(PurgeExpiredCarts(), asynchronous=False)
    print(f"Purged {purged} expired cart(s).")
    return purged


def main():
    parser = argparse.ArgumentParser(description="Luxe Commerce ordering management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")
    subparsers.add_parser("purge-carts", help="Empty carts whose inactivity expiry has passed")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_databases()
    elif args.command == "drop-db":
        drop_databases()
    elif args.command == "purge-carts":
        purge_expired_carts()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
