"""Tests for FIFO lot tracking."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Account, Holding, HoldingLot
from services.exceptions import InsufficientLotsError
from services.lot_tracker import LOT_CLOSED, LOT_OPEN, LotTracker
from tests.fixtures import make_transaction


def _buy(db, account, symbol, qty, price, day):
    txn = make_transaction(db, account, "buy", Decimal(qty) * Decimal(price), day)
    LotTracker.apply_buy(db, txn, symbol, Decimal(qty), Decimal(price))
    return txn


def _sell(db, account, symbol, qty, price, day):
    txn = make_transaction(db, account, "sell", Decimal(qty) * Decimal(price), day)
    LotTracker.apply_sell(db, txn, symbol, Decimal(qty))
    return txn


class TestApplyBuy:
    def test_creates_holding_and_lot(self, db: Session, investment_account: Account):
        txn = _buy(db, investment_account, "xyz", "10", "50", date(2025, 1, 2))

        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding is not None
        assert holding.symbol == "XYZ"
        assert holding.quantity == Decimal("10")
        assert holding.cost_basis == Decimal("500")
        assert holding.current_price == Decimal("50")

        lots = LotTracker.open_lots(db, holding.id)
        assert len(lots) == 1
        assert lots[0].transaction_id == txn.id
        assert lots[0].quantity_remaining == Decimal("10")
        assert lots[0].total_cost == Decimal("500")
        assert lots[0].source == "transaction"

    def test_second_buy_adds_to_holding(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        _buy(db, investment_account, "XYZ", "5", "60", date(2025, 2, 2))

        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("15")
        assert holding.cost_basis == Decimal("800")
        assert len(LotTracker.open_lots(db, holding.id)) == 2

    def test_current_price_overrides_trade_price(self, db: Session, investment_account: Account):
        txn = make_transaction(db, investment_account, "buy", Decimal("500"))
        holding = LotTracker.apply_buy(
            db, txn, "XYZ", Decimal("10"), Decimal("50"), current_price=Decimal("55")
        )
        assert holding.current_price == Decimal("55")
        assert holding.current_value == Decimal("550")


class TestApplySell:
    def test_consumes_oldest_lot_first(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        _buy(db, investment_account, "XYZ", "10", "70", date(2025, 2, 2))

        _sell(db, investment_account, "XYZ", "12", "80", date(2025, 3, 2))

        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("8")
        assert holding.cost_basis == Decimal("560")

        lots = (
            db.query(HoldingLot)
            .filter(HoldingLot.holding_id == holding.id)
            .order_by(HoldingLot.purchase_date)
            .all()
        )
        assert lots[0].lot_status == LOT_CLOSED
        assert lots[0].quantity_remaining == Decimal("0")
        assert lots[1].lot_status == LOT_OPEN
        assert lots[1].quantity_remaining == Decimal("8")

    def test_partial_sell_recomputes_cost_basis(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        _sell(db, investment_account, "XYZ", "4", "60", date(2025, 1, 10))

        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("6")
        assert holding.cost_basis == Decimal("300")

    def test_sale_price_records_realized_gain(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        txn = make_transaction(db, investment_account, "sell", Decimal("240"), date(2025, 1, 10))

        consumption = LotTracker.apply_sell(
            db, txn, "XYZ", Decimal("4"), sale_price=Decimal("60")
        )

        assert consumption.cost_basis_removed == Decimal("200")
        assert consumption.proceeds == Decimal("240")
        assert consumption.realized_gain == Decimal("40")
        assert Decimal(txn.transaction_metadata["realized_gain"]) == Decimal("40")

    def test_full_sell_deletes_holding(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        _sell(db, investment_account, "XYZ", "10", "60", date(2025, 1, 10))

        assert LotTracker.find_holding(db, investment_account.id, "XYZ") is None
        assert db.query(HoldingLot).count() == 0

    def test_oversell_raises_without_changes(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "3", "50", date(2025, 1, 2))
        txn = make_transaction(db, investment_account, "sell", Decimal("300"))

        with pytest.raises(InsufficientLotsError) as exc_info:
            LotTracker.apply_sell(db, txn, "XYZ", Decimal("5"))

        assert exc_info.value.available == Decimal("3")
        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("3")
        assert LotTracker.open_lots(db, holding.id)[0].quantity_remaining == Decimal("3")

    def test_sell_without_holding_raises(self, db: Session, investment_account: Account):
        txn = make_transaction(db, investment_account, "sell", Decimal("100"))
        with pytest.raises(InsufficientLotsError):
            LotTracker.apply_sell(db, txn, "NOPE", Decimal("1"))


class TestReversal:
    def test_reverse_buy_removes_its_lot(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        second = _buy(db, investment_account, "XYZ", "5", "60", date(2025, 2, 2))

        LotTracker.reverse_buy(db, second, "XYZ", Decimal("5"))

        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        assert holding.quantity == Decimal("10")
        assert holding.cost_basis == Decimal("500")
        assert db.query(HoldingLot).filter(HoldingLot.transaction_id == second.id).count() == 0

    def test_reverse_only_buy_deletes_holding(self, db: Session, investment_account: Account):
        txn = _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        assert LotTracker.reverse_buy(db, txn, "XYZ", Decimal("10")) is None
        assert db.query(Holding).count() == 0

    def test_reverse_sell_reenters_at_sell_price(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        sell = _sell(db, investment_account, "XYZ", "4", "60", date(2025, 1, 10))

        holding = LotTracker.reverse_sell(db, sell, "XYZ", Decimal("4"), Decimal("60"))

        assert holding.quantity == Decimal("10")
        assert holding.cost_basis == Decimal("540")
        reversal_lots = [
            lot for lot in LotTracker.open_lots(db, holding.id) if lot.source == "reversal"
        ]
        assert len(reversal_lots) == 1
        assert reversal_lots[0].cost_per_share == Decimal("60")

    def test_reverse_sell_recreates_closed_holding(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        sell = _sell(db, investment_account, "XYZ", "10", "60", date(2025, 1, 10))

        holding = LotTracker.reverse_sell(db, sell, "XYZ", Decimal("10"), Decimal("60"))

        assert holding.quantity == Decimal("10")
        assert holding.cost_basis == Decimal("600")


class TestLotSummary:
    def test_matches_stored_aggregate(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        _sell(db, investment_account, "XYZ", "4", "60", date(2025, 1, 10))
        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")

        summary = LotTracker.lot_summary(db, holding)

        assert summary.lot_count == 1
        assert summary.open_quantity == Decimal("6")
        assert summary.lot_cost_basis == Decimal("300")
        assert summary.cost_basis_drift == Decimal("0")

    def test_reports_drift(self, db: Session, investment_account: Account):
        _buy(db, investment_account, "XYZ", "10", "50", date(2025, 1, 2))
        holding = LotTracker.find_holding(db, investment_account.id, "XYZ")
        holding.cost_basis = Decimal("520")
        db.flush()

        assert LotTracker.lot_summary(db, holding).cost_basis_drift == Decimal("20")
