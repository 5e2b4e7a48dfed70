"""Utility script to create (or reset) the SQL store tables."""
from __future__ import annotations

import argparse
import sys

from yappin.core.settings import settings
from yappin.db.session import create_tables, drop_tables


def main() -> None:
    parser = argparse.ArgumentParser(description="Ensure the SQL store tables exist")
    parser.add_argument(
        "--drop-tables",
        action="store_true",
        help="Drop every table before creating them again.",
    )
    args = parser.parse_args()

    try:
        if args.drop_tables:
            drop_tables()
            print("[ensure_db] dropped all tables")
        create_tables()
    except Exception as exc:
        print(f"[ensure_db] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"[ensure_db] tables ready at {settings.database_url}")


if __name__ == "__main__":
    main()
