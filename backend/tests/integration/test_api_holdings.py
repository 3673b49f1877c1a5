"""Integration tests for holding and lot endpoints."""

from decimal import Decimal

from models import Account


def _trade(client, headers, account_id, txn_type, qty, price, day, ticker="XYZ"):
    response = client.post(
        "/api/transactions",
        json={
            "account_id": account_id,
            "transaction_type": txn_type,
            "amount": str(qty * price),
            "transaction_date": day,
            "metadata": {"ticker": ticker, "quantity": str(qty), "price": str(price)},
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text


class TestHoldings:
    def test_holdings_with_lot_totals(self, client, headers, investment_account: Account):
        _trade(client, headers, investment_account.id, "buy", 10, 50, "2025-01-02")
        _trade(client, headers, investment_account.id, "buy", 5, 60, "2025-01-05")
        _trade(client, headers, investment_account.id, "sell", 12, 70, "2025-01-10")

        response = client.get(f"/api/accounts/{investment_account.id}/holdings", headers=headers)

        assert response.status_code == 200
        [holding] = response.json()
        assert holding["symbol"] == "XYZ"
        assert Decimal(holding["quantity"]) == Decimal("3")
        assert Decimal(holding["cost_basis"]) == Decimal("180")
        assert holding["lot_count"] == 1
        assert Decimal(holding["lot_cost_basis"]) == Decimal("180")

    def test_unknown_account(self, client, headers):
        response = client.get("/api/accounts/missing/holdings", headers=headers)
        assert response.status_code == 404


class TestLots:
    def test_open_lots_only_by_default(self, client, headers, investment_account: Account):
        _trade(client, headers, investment_account.id, "buy", 10, 50, "2025-01-02")
        _trade(client, headers, investment_account.id, "buy", 5, 60, "2025-01-05")
        _trade(client, headers, investment_account.id, "sell", 12, 70, "2025-01-10")

        open_lots = client.get(f"/api/accounts/{investment_account.id}/lots", headers=headers).json()
        all_lots = client.get(
            f"/api/accounts/{investment_account.id}/lots?include_closed=true", headers=headers
        ).json()

        assert len(open_lots) == 1
        assert Decimal(open_lots[0]["quantity_remaining"]) == Decimal("3")
        assert [lot["lot_status"] for lot in all_lots] == ["closed", "open"]

    def test_symbol_filter(self, client, headers, investment_account: Account):
        _trade(client, headers, investment_account.id, "buy", 1, 100, "2025-01-02", ticker="AAA")
        _trade(client, headers, investment_account.id, "buy", 1, 100, "2025-01-02", ticker="BBB")

        lots = client.get(
            f"/api/accounts/{investment_account.id}/lots?symbol=bbb", headers=headers
        ).json()

        assert [lot["symbol"] for lot in lots] == ["BBB"]
