#!/usr/bin/env python
"""Recalculate stored account balances from the transaction log.

Replays each account's transactions and overwrites ``current_balance`` with
the replayed value. With --dry-run only the audit is printed.

Usage:
    python -m scripts.recalculate_balances --user-id USER
    python -m scripts.recalculate_balances --user-id USER --account-id ACCOUNT
    python -m scripts.recalculate_balances --user-id USER --dry-run
"""

import argparse

from database import get_session_local
from logging_config import setup_logging
from models import Account
from services.reconciliation_service import ReconciliationService


def recalculate_balances(user_id: str, account_id: str | None = None, dry_run: bool = False) -> int:
    """Audit (and unless dry-run, repair) balances. Returns the number of failures."""
    SessionLocal = get_session_local()
    db = SessionLocal()

    try:
        query = db.query(Account).filter(Account.user_id == user_id)
        if account_id:
            query = query.filter(Account.id == account_id)
        accounts = query.order_by(Account.name).all()

        if not accounts:
            print("No matching accounts found")
            return 1

        print(f"Auditing {len(accounts)} account(s) for user {user_id}")
        for account in accounts:
            audit = ReconciliationService.audit_account(db, account)
            marker = "MISMATCH" if audit.has_discrepancy else "ok"
            print(
                f"  [{marker}] {account.name}: stored {audit.current_balance}, "
                f"replayed {audit.calculated_balance} (diff {audit.difference}, "
                f"{audit.transaction_count} transactions)"
            )

        if dry_run:
            print("\n[DRY RUN] No changes made. Run without --dry-run to apply.")
            return 0

        failures = 0
        if account_id:
            result = ReconciliationService.recalculate_account_balance(db, user_id, account_id)
            if result.success:
                print(f"\nUpdated balance to {result.new_balance}")
            else:
                failures = 1
                print(f"\nFailed: {result.error}")
        else:
            bulk = ReconciliationService.recalculate_all_account_balances(db, user_id)
            failures = bulk.failed_count
            print(f"\nUpdated {bulk.updated_count} account(s), {bulk.failed_count} failed")
            for error in bulk.errors:
                print(f"  - {error['account_id']}: {error['error']}")

        db.commit()
        return failures

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Recalculate account balances from transactions"
    )
    parser.add_argument("--user-id", required=True, help="User whose accounts to repair")
    parser.add_argument("--account-id", help="Repair a single account")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show the audit without making changes",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)
    raise SystemExit(
        1 if recalculate_balances(args.user_id, args.account_id, args.dry_run) else 0
    )
