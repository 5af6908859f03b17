"""Ticketing database management CLI.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys


def setup_database():
    """Create the ticketing schema."""
    from ticketing.domain import ticketing
    from ticketing.utils.db import setup_db

    print("Initializing ticketing domain...")
    ticketing.init()
    print("Creating ticketing database schema...")
    setup_db(ticketing)
    print("Done.")


def drop_database():
    """Drop the ticketing schema."""
    from ticketing.domain import ticketing
    from ticketing.utils.db import drop_db

    print("Initializing ticketing domain...")
    ticketing.init()
    print("Dropping ticketing database schema...")
    drop_db(ticketing)
    print("Done.")


def main():
    parser = argparse.ArgumentParser(description="Ticketing database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
