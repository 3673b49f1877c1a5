"""Tests for SnapshotService."""

from datetime import date, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Account, AssetClass, PortfolioSnapshot
from services.balance_service import BalanceService
from services.snapshot_service import SnapshotService
from tests.fixtures import OTHER_USER_ID, USER_ID, make_transaction, trade_metadata


@pytest.fixture
def funded_accounts(db: Session, asset_class: AssetClass) -> list[Account]:
    """Checking $1,500.255, unclassified brokerage $10,000, card owing $400."""
    accounts = [
        Account(
            user_id=USER_ID,
            name="Checking",
            account_type="asset",
            category="Checking",
            current_balance=Decimal("1500.255"),
            asset_class_id=asset_class.id,
        ),
        Account(
            user_id=USER_ID,
            name="Brokerage",
            account_type="asset",
            category="Investment Accounts",
            current_balance=Decimal("10000"),
        ),
        Account(
            user_id=USER_ID,
            name="Card",
            account_type="liability",
            category="Credit Cards",
            current_balance=Decimal("-400"),
        ),
    ]
    db.add_all(accounts)
    db.commit()
    return accounts


class TestCalculateSnapshot:
    def test_totals(self, db: Session, funded_accounts):
        data = SnapshotService.calculate_snapshot(db, USER_ID)

        assert data.total_assets == Decimal("11500.26")
        assert data.total_liabilities == Decimal("400.00")
        assert data.net_worth == Decimal("11100.26")

    def test_breakdown_by_asset_class(self, db: Session, funded_accounts, asset_class: AssetClass):
        data = SnapshotService.calculate_snapshot(db, USER_ID)

        assert data.asset_class_breakdown == {
            asset_class.name: Decimal("1500.26"),
            "Uncategorized": Decimal("10000.00"),
        }

    def test_positive_liability_balance_is_magnitude(self, db: Session):
        db.add(
            Account(
                user_id=USER_ID,
                name="Loan",
                account_type="liability",
                category="Loans",
                current_balance=Decimal("2500"),
            )
        )
        db.commit()

        data = SnapshotService.calculate_snapshot(db, USER_ID)

        assert data.total_liabilities == Decimal("2500.00")
        assert data.net_worth == Decimal("-2500.00")

    def test_mixed_sign_liabilities_add_magnitudes(self, db: Session):
        db.add_all(
            [
                Account(
                    user_id=USER_ID,
                    name="Overpaid Card",
                    account_type="liability",
                    category="Credit Cards",
                    current_balance=Decimal("-500"),
                ),
                Account(
                    user_id=USER_ID,
                    name="Loan",
                    account_type="liability",
                    category="Loans",
                    current_balance=Decimal("300"),
                ),
            ]
        )
        db.commit()

        data = SnapshotService.calculate_snapshot(db, USER_ID)

        assert data.total_liabilities == Decimal("800.00")
        assert data.net_worth == Decimal("-800.00")

    def test_investment_buy_counts_toward_assets(
        self, db: Session, investment_account: Account
    ):
        buy = make_transaction(
            db, investment_account, "buy", "500", metadata=trade_metadata("XYZ", 10, 50)
        )
        assert BalanceService().apply(db, buy).success
        db.commit()

        data = SnapshotService.calculate_snapshot(db, USER_ID)

        assert data.total_assets == Decimal("500.00")
        assert data.net_worth == Decimal("500.00")

    def test_no_accounts(self, db: Session):
        data = SnapshotService.calculate_snapshot(db, USER_ID)
        assert data.net_worth == Decimal("0.00")
        assert data.asset_class_breakdown == {}


class TestGenerateSnapshot:
    def test_writes_row(self, db: Session, funded_accounts):
        result = SnapshotService.generate_snapshot(db, USER_ID, date(2025, 3, 1))
        db.commit()

        assert result.success
        row = db.query(PortfolioSnapshot).one()
        assert row.snapshot_date == date(2025, 3, 1)
        assert row.net_worth == Decimal("11100.26")
        assert row.asset_class_breakdown["Uncategorized"] == 10000.0

    def test_regenerate_overwrites(self, db: Session, funded_accounts):
        SnapshotService.generate_snapshot(db, USER_ID, date(2025, 3, 1))
        db.commit()

        funded_accounts[1].current_balance = Decimal("12000")
        db.commit()
        result = SnapshotService.generate_snapshot(db, USER_ID, date(2025, 3, 1))
        db.commit()

        assert result.data.total_assets == Decimal("13500.26")
        rows = db.query(PortfolioSnapshot).execution_options(populate_existing=True).all()
        assert len(rows) == 1
        assert rows[0].total_assets == Decimal("13500.26")

    def test_defaults_to_today(self, db: Session, funded_accounts):
        result = SnapshotService.generate_snapshot(db, USER_ID)
        assert result.snapshot_date == date.today()

    def test_failure_is_reported(self, db: Session, funded_accounts, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("write failed")

        monkeypatch.setattr(SnapshotService, "_upsert", broken)

        result = SnapshotService.generate_snapshot(db, USER_ID, date(2025, 3, 1))

        assert not result.success
        assert result.error == "write failed"
        assert db.query(PortfolioSnapshot).count() == 0


class TestBackfill:
    def test_fills_missing_dates_only(self, db: Session, funded_accounts):
        SnapshotService.generate_snapshot(db, USER_ID, date(2025, 3, 2))
        db.commit()

        result = SnapshotService.backfill_snapshots(db, USER_ID, date(2025, 3, 1), date(2025, 3, 4))
        db.commit()

        assert result.success
        assert result.snapshots_created == 3
        dates = [r.snapshot_date for r in db.query(PortfolioSnapshot).order_by(PortfolioSnapshot.snapshot_date)]
        assert dates == [date(2025, 3, d) for d in (1, 2, 3, 4)]
        # every day is valued from current balances
        assert len({r.net_worth for r in db.query(PortfolioSnapshot)}) == 1

    def test_rejects_inverted_range(self, db: Session):
        result = SnapshotService.backfill_snapshots(db, USER_ID, date(2025, 3, 5), date(2025, 3, 1))
        assert not result.success
        assert "after" in result.error

    def test_records_failed_dates(self, db: Session, funded_accounts, monkeypatch):
        original = SnapshotService._upsert

        def flaky(db_, user_id, snapshot_date, data):
            if snapshot_date == date(2025, 3, 2):
                raise RuntimeError("boom")
            return original(db_, user_id, snapshot_date, data)

        monkeypatch.setattr(SnapshotService, "_upsert", flaky)

        result = SnapshotService.backfill_snapshots(db, USER_ID, date(2025, 3, 1), date(2025, 3, 3))

        assert result.success
        assert result.snapshots_created == 2
        assert result.dates_failed == [date(2025, 3, 2)]


class TestHistory:
    def test_window_and_order(self, db: Session, funded_accounts):
        today = date.today()
        for offset in (40, 10, 2):
            SnapshotService.generate_snapshot(db, USER_ID, today - timedelta(days=offset))
        db.commit()

        rows = SnapshotService.get_historical_snapshots(db, USER_ID, days=30)

        assert [r.snapshot_date for r in rows] == [
            today - timedelta(days=10),
            today - timedelta(days=2),
        ]


class TestAllUsers:
    def test_snapshots_every_user(self, db: Session, funded_accounts):
        db.add(
            Account(
                user_id=OTHER_USER_ID,
                name="Savings",
                account_type="asset",
                category="Savings",
                current_balance=Decimal("50"),
            )
        )
        db.commit()

        result = SnapshotService.generate_for_all_users(db, date(2025, 3, 1))
        db.commit()

        assert result.users_processed == 2
        assert result.succeeded == 2
        assert db.query(PortfolioSnapshot).count() == 2
