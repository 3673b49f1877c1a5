"""Integration tests for audit and repair endpoints."""

from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account
from services.lot_tracker import LotTracker
from tests.fixtures import make_transaction, trade_metadata


def _post_deposit(client, headers, account_id: str, amount: str):
    response = client.post(
        "/api/transactions",
        json={
            "account_id": account_id,
            "transaction_type": "deposit",
            "amount": amount,
            "transaction_date": "2025-01-15",
        },
        headers=headers,
    )
    assert response.status_code == 201


class TestAuditReport:
    def test_clean_user(self, client, headers, bank_account: Account):
        _post_deposit(client, headers, bank_account.id, "100")

        response = client.get("/api/audit", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_discrepancies"] == 0
        assert data["accounts_with_issues"] == 0
        assert len(data["account_audits"]) == 1
        assert Decimal(data["account_audits"][0]["calculated_balance"]) == Decimal("100")

    def test_reports_drift_without_fixing(self, client, db: Session, headers, bank_account: Account):
        _post_deposit(client, headers, bank_account.id, "100")
        db.refresh(bank_account)
        bank_account.current_balance = Decimal("40")
        make_transaction(db, None, "fee", "2")
        db.commit()

        data = client.get("/api/audit", headers=headers).json()

        assert data["total_discrepancies"] == 1
        assert len(data["orphaned_transactions"]) == 1
        assert data["orphaned_transactions"][0]["reason"] == "No account associated"
        db.refresh(bank_account)
        assert bank_account.current_balance == Decimal("40")

    def test_account_audit(self, client, db: Session, headers, investment_account: Account):
        make_transaction(
            db, investment_account, "buy", "500", date(2025, 1, 2), trade_metadata("XYZ", 10, 50)
        )
        db.commit()

        response = client.get(f"/api/audit/accounts/{investment_account.id}", headers=headers)

        assert response.status_code == 200
        holdings = response.json()["holdings"]
        assert holdings[0]["symbol"] == "XYZ"
        assert holdings[0]["has_discrepancy"] is True

    def test_other_users_account_hidden(self, client, headers, other_user_account: Account):
        response = client.get(f"/api/audit/accounts/{other_user_account.id}", headers=headers)
        assert response.status_code == 404


class TestRepair:
    def test_recalculate_account(self, client, db: Session, headers, bank_account: Account):
        _post_deposit(client, headers, bank_account.id, "100")
        db.refresh(bank_account)
        bank_account.current_balance = Decimal("40")
        db.commit()

        response = client.post(f"/api/audit/accounts/{bank_account.id}/recalculate", headers=headers)

        assert response.status_code == 200
        assert Decimal(response.json()["new_balance"]) == Decimal("100")
        db.refresh(bank_account)
        assert bank_account.current_balance == Decimal("100")

    def test_recalculate_all(self, client, db: Session, headers, bank_account: Account, credit_card: Account):
        _post_deposit(client, headers, bank_account.id, "100")
        db.refresh(bank_account)
        bank_account.current_balance = Decimal("0")
        db.commit()

        response = client.post("/api/audit/recalculate-all", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"updated_count": 2, "failed_count": 0, "errors": []}
        db.refresh(bank_account)
        assert bank_account.current_balance == Decimal("100")

    def test_rebuild_holdings(self, client, db: Session, headers, investment_account: Account):
        make_transaction(
            db, investment_account, "buy", "500", date(2025, 1, 2), trade_metadata("XYZ", 10, 50)
        )
        db.commit()

        response = client.post(
            f"/api/audit/accounts/{investment_account.id}/rebuild-holdings", headers=headers
        )

        assert response.status_code == 200
        assert response.json()["holdings_rebuilt"] == 1
        assert LotTracker.find_holding(db, investment_account.id, "XYZ").quantity == Decimal("10")

    def test_repair_unknown_account(self, client, headers):
        response = client.post("/api/audit/accounts/missing/recalculate", headers=headers)
        assert response.status_code == 404
