"""Daily net worth snapshots.

A snapshot materializes a user's totals for one calendar date from the
stored account balances. Writing is an upsert keyed on
(user_id, snapshot_date), so regenerating a date replaces it instead of
adding a second row.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, joinedload

from models import Account, PortfolioSnapshot, generate_uuid
from models.utils import utc_now

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")
UNCATEGORIZED = "Uncategorized"

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


@dataclass
class SnapshotData:
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    asset_class_breakdown: dict[str, Decimal]


@dataclass
class SnapshotResult:
    success: bool
    snapshot_date: date | None = None
    data: SnapshotData | None = None
    error: str | None = None


@dataclass
class BackfillResult:
    success: bool
    snapshots_created: int = 0
    dates_failed: list[date] = field(default_factory=list)
    error: str | None = None


@dataclass
class BatchSnapshotResult:
    """Outcome of snapshotting every user for one date."""

    snapshot_date: date
    users_processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: list[dict] = field(default_factory=list)


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS)


class SnapshotService:
    """Calculates and stores per-day portfolio snapshots."""

    @staticmethod
    def calculate_snapshot(db: Session, user_id: str) -> SnapshotData:
        """Totals for a user from current account balances.

        Liabilities are reported as a positive magnitude; the breakdown
        covers asset accounts only, grouped by asset class name.
        """
        accounts = (
            db.query(Account)
            .options(joinedload(Account.asset_class))
            .filter(Account.user_id == user_id)
            .all()
        )

        total_assets = ZERO
        total_liabilities = ZERO
        breakdown: dict[str, Decimal] = {}

        for account in accounts:
            balance = Decimal(account.current_balance or ZERO)
            if account.account_type == "asset":
                total_assets += balance
                name = account.asset_class.name if account.asset_class else UNCATEGORIZED
                breakdown[name] = breakdown.get(name, ZERO) + balance
            elif account.account_type == "liability":
                # Each liability counts by magnitude, whatever sign it is stored with
                total_liabilities += abs(balance)

        return SnapshotData(
            total_assets=_cents(total_assets),
            total_liabilities=_cents(total_liabilities),
            net_worth=_cents(total_assets - total_liabilities),
            asset_class_breakdown={k: _cents(v) for k, v in breakdown.items()},
        )

    @staticmethod
    def _upsert(db: Session, user_id: str, snapshot_date: date, data: SnapshotData) -> None:
        values = {
            "total_assets": data.total_assets,
            "total_liabilities": data.total_liabilities,
            "net_worth": data.net_worth,
            "asset_class_breakdown": {
                k: float(v) for k, v in data.asset_class_breakdown.items()
            },
            "updated_at": utc_now(),
        }

        insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(PortfolioSnapshot).values(
                id=generate_uuid(),
                user_id=user_id,
                snapshot_date=snapshot_date,
                created_at=utc_now(),
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "snapshot_date"],
                set_=values,
            )
            db.execute(stmt)
            return

        existing = (
            db.query(PortfolioSnapshot)
            .filter(
                PortfolioSnapshot.user_id == user_id,
                PortfolioSnapshot.snapshot_date == snapshot_date,
            )
            .first()
        )
        if existing is None:
            db.add(PortfolioSnapshot(user_id=user_id, snapshot_date=snapshot_date, **values))
        else:
            for key, value in values.items():
                setattr(existing, key, value)
        db.flush()

    @staticmethod
    def generate_snapshot(
        db: Session, user_id: str, snapshot_date: date | None = None
    ) -> SnapshotResult:
        """Calculate and upsert the snapshot for ``snapshot_date`` (default today)."""
        snapshot_date = snapshot_date or date.today()
        try:
            with db.begin_nested():
                data = SnapshotService.calculate_snapshot(db, user_id)
                SnapshotService._upsert(db, user_id, snapshot_date, data)
        except Exception as e:
            logger.warning(
                "Snapshot failed for user %s on %s", user_id, snapshot_date, exc_info=True
            )
            return SnapshotResult(success=False, snapshot_date=snapshot_date, error=str(e))

        logger.info(
            "Snapshot written for user %s on %s: net worth %s",
            user_id,
            snapshot_date,
            data.net_worth,
        )
        return SnapshotResult(success=True, snapshot_date=snapshot_date, data=data)

    @staticmethod
    def backfill_snapshots(
        db: Session, user_id: str, start_date: date, end_date: date | None = None
    ) -> BackfillResult:
        """Create snapshots for each missing date in [start_date, end_date].

        Dates are processed one at a time in order. Dates that already have
        a snapshot are left alone; a failed date is recorded and skipped.
        Every backfilled date uses current balances.
        """
        end_date = end_date or date.today()
        if start_date > end_date:
            return BackfillResult(
                success=False, error=f"start_date {start_date} is after end_date {end_date}"
            )

        existing = {
            row.snapshot_date
            for row in db.query(PortfolioSnapshot.snapshot_date)
            .filter(
                PortfolioSnapshot.user_id == user_id,
                PortfolioSnapshot.snapshot_date >= start_date,
                PortfolioSnapshot.snapshot_date <= end_date,
            )
            .all()
        }

        result = BackfillResult(success=True)
        current = start_date
        while current <= end_date:
            if current not in existing:
                snapshot = SnapshotService.generate_snapshot(db, user_id, current)
                if snapshot.success:
                    result.snapshots_created += 1
                else:
                    result.dates_failed.append(current)
            current += timedelta(days=1)

        logger.info(
            "Backfilled %d snapshots for user %s (%s to %s, %d failed)",
            result.snapshots_created,
            user_id,
            start_date,
            end_date,
            len(result.dates_failed),
        )
        return result

    @staticmethod
    def get_historical_snapshots(
        db: Session, user_id: str, days: int = 30
    ) -> list[PortfolioSnapshot]:
        """Snapshots from the last ``days`` days, oldest first."""
        since = date.today() - timedelta(days=days)
        return (
            db.query(PortfolioSnapshot)
            .filter(
                PortfolioSnapshot.user_id == user_id,
                PortfolioSnapshot.snapshot_date >= since,
            )
            .order_by(PortfolioSnapshot.snapshot_date.asc())
            .execution_options(populate_existing=True)
            .all()
        )

    @staticmethod
    def generate_for_all_users(
        db: Session, snapshot_date: date | None = None
    ) -> BatchSnapshotResult:
        """Snapshot every user that owns an account.

        One user's failure does not stop the rest.
        """
        snapshot_date = snapshot_date or date.today()
        result = BatchSnapshotResult(snapshot_date=snapshot_date)

        user_ids = [
            row.user_id
            for row in db.query(Account.user_id).distinct().order_by(Account.user_id).all()
        ]
        for user_id in user_ids:
            result.users_processed += 1
            snapshot = SnapshotService.generate_snapshot(db, user_id, snapshot_date)
            if snapshot.success:
                result.succeeded += 1
            else:
                result.failed += 1
                result.errors.append({"user_id": user_id, "error": snapshot.error})

        logger.info(
            "Daily snapshots for %s: %d users, %d succeeded, %d failed",
            snapshot_date,
            result.users_processed,
            result.succeeded,
            result.failed,
        )
        return result
