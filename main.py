#!/usr/bin/env python3
"""Telephone Line Routing CLI.

This module provides a command-line interface for preparing the
PostgreSQL database and running bulk imports without the API server.

Architecture:
    - Schema creation goes through src.telroute.common.schema
    - Imports reuse the same preview and commit use cases as the API
    - A file is always previewed first; rows are written only with --commit

Environment Variables Required:
    - DATABASE_URL: PostgreSQL connection string

Example Usage:
    $ python main.py --init-db                                 # Create tables
    $ python main.py --import-phone-lines lines.xlsx           # Preview only
    $ python main.py --import-phone-lines lines.xlsx --commit  # Preview and import
    $ python main.py --import-assets assets.csv --commit --actor admin
"""
import argparse
import asyncio
import os
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.telroute.bulk_import.adapters import (
    InMemoryImportSessionStore,
    OpenpyxlTabularParser,
    PostgresImportRepository,
)
from src.telroute.bulk_import.domain import ImportKind, ImportSession
from src.telroute.bulk_import.use_cases import CommitImportUseCase, PreviewImportUseCase
from src.telroute.common.database import close_pool, create_pool
from src.telroute.common.exceptions import TelrouteError
from src.telroute.common.schema import apply_schema


async def setup_database():
    """Create database connection pool.

    Returns:
        asyncpg.Pool or None if database not configured
    """
    database_url = os.getenv("DATABASE_URL")

    if not database_url:
        print("[Main] DATABASE_URL is not set")
        return None

    try:
        pool = await create_pool(database_url, min_size=1, max_size=4)
        print("[Main] Connected to PostgreSQL")
        return pool
    except TelrouteError as e:
        print(f"[Main] Database connection failed: {e.message}")
        return None


def print_preview(session: ImportSession) -> None:
    """Print the rows that will not be imported and a summary."""
    blocked = [r for r in session.rows if not r.can_import]

    print(f"\n[Main] {len(session.rows)} rows read, {len(session.importable_rows)} importable")
    if not blocked:
        return

    print(f"\n{'Row':<6} {'Key':<20} {'Reason':<40}")
    print("-" * 70)
    for row in blocked:
        data = row.to_dict()
        if session.kind == ImportKind.PHONE_LINES:
            valid, duplicate = data["is_phone_number_valid"], data["is_phone_number_duplicate"]
        else:
            valid, duplicate = data["is_asset_number_valid"], data["is_asset_number_duplicate"]
        if not valid:
            reason = "missing key"
        elif duplicate:
            reason = "duplicate"
        else:
            reason = "missing name"
        print(f"{row.row_number:<6} {row.key[:18]:<20} {reason:<40}")


async def run_import(pool, kind: ImportKind, path: Path, commit: bool, actor: str = None) -> int:
    """Preview a file and optionally commit its importable rows.

    Returns:
        Process exit code
    """
    repo = PostgresImportRepository(pool)
    sessions = InMemoryImportSessionStore()
    preview = PreviewImportUseCase(OpenpyxlTabularParser(), repo, repo, sessions)

    try:
        session = await preview.execute(kind, path.read_bytes(), filename=path.name)
    except TelrouteError as e:
        print(f"[Main] Cannot read {path.name}: {e.message}")
        return 1

    print_preview(session)
    if not commit:
        print("\n[Main] Preview only. Re-run with --commit to import.")
        return 0

    async def report(progress):
        print(f"\r[Main] {progress.percent:>3}% ({progress.processed}/{progress.total})", end="", flush=True)

    result = await CommitImportUseCase(repo, sessions).execute(session.id, actor=actor, on_progress=report)
    print()

    print("\n" + "=" * 60)
    print("IMPORT COMPLETE")
    print("=" * 60)
    print(f"Created: {result.success_count}  Failed: {result.error_count}  Skipped: {result.skipped_count}")
    for error in result.errors:
        print(f"  row {error.row_number} ({error.key}): {error.message}")
    return 1 if result.error_count else 0


async def run(args: argparse.Namespace) -> int:
    start_time = datetime.now()
    print(f"[Main] Starting at {start_time.isoformat()}")

    pool = await setup_database()
    if pool is None:
        return 1

    exit_code = 0
    try:
        if args.init_db:
            count = await apply_schema(pool)
            print(f"[Main] Schema applied ({count} statements)")

        if args.import_phone_lines:
            exit_code = await run_import(
                pool, ImportKind.PHONE_LINES, Path(args.import_phone_lines), args.commit, args.actor
            )
        elif args.import_assets:
            exit_code = await run_import(
                pool, ImportKind.ASSETS, Path(args.import_assets), args.commit, args.actor
            )
    finally:
        await close_pool(pool)

    duration = (datetime.now() - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return exit_code


def main():
    parser = argparse.ArgumentParser(
        description="Prepare the line routing database and import phone lines or assets",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --init-db                                  # Create tables
  python main.py --import-phone-lines lines.xlsx            # Preview a phone line sheet
  python main.py --import-phone-lines lines.xlsx --commit   # Import it
  python main.py --import-assets assets.csv --commit        # Import assets
        """
    )

    db_group = parser.add_argument_group("Database")
    db_group.add_argument(
        "--init-db",
        action="store_true",
        help="Create tables and indexes (safe to re-run)"
    )

    import_group = parser.add_argument_group("Bulk Import")
    source = import_group.add_mutually_exclusive_group()
    source.add_argument(
        "--import-phone-lines",
        type=str,
        metavar="FILE",
        help="Phone line sheet (.xlsx or .csv)"
    )
    source.add_argument(
        "--import-assets",
        type=str,
        metavar="FILE",
        help="Asset sheet (.xlsx or .csv)"
    )
    import_group.add_argument(
        "--commit",
        action="store_true",
        help="Write importable rows (default: preview only)"
    )
    import_group.add_argument(
        "--actor",
        type=str,
        help="User recorded in the change log for imported lines"
    )

    args = parser.parse_args()

    if not (args.init_db or args.import_phone_lines or args.import_assets):
        parser.print_help()
        sys.exit(2)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
