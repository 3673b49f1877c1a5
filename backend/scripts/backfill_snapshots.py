#!/usr/bin/env python
"""Backfill daily portfolio snapshots for a date range.

Dates that already have a snapshot are skipped. Each backfilled date is
written from current account balances.

Usage:
    python -m scripts.backfill_snapshots --user-id USER --start 2024-01-01
    python -m scripts.backfill_snapshots --user-id USER --start 2024-01-01 --end 2024-03-31
"""

import argparse
from datetime import date

from database import get_session_local
from logging_config import setup_logging
from services.snapshot_service import BackfillResult, SnapshotService


def backfill_snapshots(user_id: str, start: date, end: date | None = None) -> BackfillResult:
    """Run the backfill and commit what it created."""
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        result = SnapshotService.backfill_snapshots(db, user_id, start, end)
        if not result.success:
            print(f"Backfill failed: {result.error}")
            return result

        db.commit()
        print(f"Created {result.snapshots_created} snapshot(s)")
        if result.dates_failed:
            print(f"Failed dates ({len(result.dates_failed)}):")
            for failed in result.dates_failed:
                print(f"  - {failed.isoformat()}")
        return result

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Backfill daily portfolio snapshots")
    parser.add_argument("--user-id", required=True, help="User to backfill")
    parser.add_argument("--start", required=True, type=date.fromisoformat, help="First date (YYYY-MM-DD)")
    parser.add_argument("--end", type=date.fromisoformat, help="Last date (YYYY-MM-DD), default today")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)
    outcome = backfill_snapshots(args.user_id, args.start, args.end)
    raise SystemExit(0 if outcome.success and not outcome.dates_failed else 1)
