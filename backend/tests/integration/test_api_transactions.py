"""Integration tests for transaction API endpoints."""

from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account, Transaction
from services.lot_tracker import LotTracker


def _buy_payload(account_id: str, qty: int = 10, price: int = 50, day: str = "2025-01-02") -> dict:
    return {
        "account_id": account_id,
        "transaction_type": "buy",
        "amount": str(qty * price),
        "transaction_date": day,
        "metadata": {"ticker": "xyz", "quantity": str(qty), "price": str(price)},
    }


class TestCreateTransaction:
    def test_deposit(self, client, db: Session, headers, bank_account: Account):
        response = client.post(
            "/api/transactions",
            json={
                "account_id": bank_account.id,
                "transaction_type": "Deposit",
                "amount": "250.00",
                "transaction_date": "2025-01-15",
                "description": "Paycheck",
            },
            headers=headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["transaction"]["transaction_type"] == "deposit"
        assert data["transaction"]["ledger_applied"] is True
        assert Decimal(data["balance_delta"]) == Decimal("250")

        db.refresh(bank_account)
        assert bank_account.current_balance == Decimal("250")

    def test_buy_creates_holding(self, client, db: Session, headers, investment_account: Account):
        response = client.post("/api/transactions", json=_buy_payload(investment_account.id), headers=headers)

        assert response.status_code == 201
        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("10")

    def test_oversell_rejected(self, client, db: Session, headers, investment_account: Account):
        payload = _buy_payload(investment_account.id)
        payload["transaction_type"] = "sell"

        response = client.post("/api/transactions", json=payload, headers=headers)

        assert response.status_code == 400
        assert "Insufficient" in response.json()["detail"]
        assert db.query(Transaction).count() == 0

    def test_negative_amount_rejected(self, client, headers, bank_account: Account):
        response = client.post(
            "/api/transactions",
            json={
                "account_id": bank_account.id,
                "transaction_type": "deposit",
                "amount": "-5",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        )
        assert response.status_code == 422

    def test_unknown_account(self, client, headers):
        response = client.post(
            "/api/transactions",
            json={
                "account_id": "missing",
                "transaction_type": "deposit",
                "amount": "5",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        )
        assert response.status_code == 404

    def test_requires_user_header(self, client, bank_account: Account):
        response = client.post(
            "/api/transactions",
            json={
                "account_id": bank_account.id,
                "transaction_type": "deposit",
                "amount": "5",
                "transaction_date": "2025-01-15",
            },
        )
        assert response.status_code == 422


class TestListTransactions:
    def test_scoped_to_user(self, client, headers, bank_account: Account, other_user_account: Account):
        client.post(
            "/api/transactions",
            json={
                "account_id": bank_account.id,
                "transaction_type": "deposit",
                "amount": "5",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        )
        client.post(
            "/api/transactions",
            json={
                "account_id": other_user_account.id,
                "transaction_type": "deposit",
                "amount": "7",
                "transaction_date": "2025-01-15",
            },
            headers={"X-User-Id": other_user_account.user_id},
        )

        response = client.get("/api/transactions", headers=headers)

        assert response.status_code == 200
        assert [Decimal(t["amount"]) for t in response.json()] == [Decimal("5")]

    def test_date_filter(self, client, headers, bank_account: Account):
        for day in ("2025-01-01", "2025-02-01"):
            client.post(
                "/api/transactions",
                json={
                    "account_id": bank_account.id,
                    "transaction_type": "deposit",
                    "amount": "5",
                    "transaction_date": day,
                },
                headers=headers,
            )

        response = client.get("/api/transactions?start_date=2025-01-15", headers=headers)

        assert [t["transaction_date"] for t in response.json()] == ["2025-02-01"]


class TestReplaceAndDelete:
    def test_replace(self, client, db: Session, headers, bank_account: Account):
        created = client.post(
            "/api/transactions",
            json={
                "account_id": bank_account.id,
                "transaction_type": "deposit",
                "amount": "100",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        ).json()

        response = client.put(
            f"/api/transactions/{created['transaction']['id']}",
            json={
                "account_id": bank_account.id,
                "transaction_type": "expense",
                "amount": "30",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        )

        assert response.status_code == 200
        db.refresh(bank_account)
        assert bank_account.current_balance == Decimal("-30")
        assert db.query(Transaction).count() == 1

    def test_sell_reversal_via_delete(self, client, db: Session, headers, investment_account: Account):
        client.post("/api/transactions", json=_buy_payload(investment_account.id), headers=headers)
        sell = _buy_payload(investment_account.id, qty=4, price=60, day="2025-01-10")
        sell["transaction_type"] = "sell"
        sell_id = client.post("/api/transactions", json=sell, headers=headers).json()["transaction"]["id"]

        response = client.delete(f"/api/transactions/{sell_id}", headers=headers)

        assert response.status_code == 204
        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("10")
        assert holding.cost_basis == Decimal("540")

    def test_delete_missing(self, client, headers):
        response = client.delete("/api/transactions/nope", headers=headers)
        assert response.status_code == 404

    def test_replace_missing(self, client, headers, bank_account: Account):
        response = client.put(
            "/api/transactions/nope",
            json={
                "account_id": bank_account.id,
                "transaction_type": "deposit",
                "amount": "1",
                "transaction_date": "2025-01-15",
            },
            headers=headers,
        )
        assert response.status_code == 404
