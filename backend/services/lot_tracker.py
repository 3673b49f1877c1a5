"""FIFO lot tracking for holdings.

Opens a lot per acquisition, consumes open lots oldest-first on disposal,
and keeps each holding's aggregate cost basis equal to the sum of
``quantity_remaining * cost_per_share`` over its open lots.

All methods only ``flush()``; the caller owns the transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import asc
from sqlalchemy.orm import Session

from models import Holding, HoldingLot
from services.exceptions import InsufficientLotsError
from services.ledger_rules import ZERO, asset_type_for

logger = logging.getLogger(__name__)

LOT_OPEN = "open"
LOT_CLOSED = "closed"


@dataclass
class LotConsumption:
    """Result of consuming open lots for a sell.

    ``proceeds`` is only known when the sale price is; until then the
    realized gain is reported against zero proceeds.
    """

    quantity: Decimal = ZERO
    cost_basis_removed: Decimal = ZERO
    proceeds: Decimal = ZERO
    lots_touched: list[HoldingLot] = field(default_factory=list)
    holding: Holding | None = None

    @property
    def realized_gain(self) -> Decimal:
        return self.proceeds - self.cost_basis_removed


@dataclass
class LotSummary:
    """Lot-level view of a holding compared with its stored aggregate."""

    holding_id: str
    symbol: str
    lot_count: int
    open_quantity: Decimal
    lot_cost_basis: Decimal
    stored_quantity: Decimal
    stored_cost_basis: Decimal

    @property
    def cost_basis_drift(self) -> Decimal:
        return self.stored_cost_basis - self.lot_cost_basis


class LotTracker:
    """Applies buys/sells and their reversals to holdings and lots."""

    # --- Queries ---

    @staticmethod
    def find_holding(db: Session, account_id: str, symbol: str) -> Holding | None:
        return (
            db.query(Holding)
            .filter(Holding.account_id == account_id, Holding.symbol == symbol.upper())
            .first()
        )

    @staticmethod
    def open_lots(db: Session, holding_id: str) -> list[HoldingLot]:
        """Open lots for a holding in FIFO order (oldest purchase first)."""
        return (
            db.query(HoldingLot)
            .filter(
                HoldingLot.holding_id == holding_id,
                HoldingLot.lot_status == LOT_OPEN,
                HoldingLot.quantity_remaining > 0,
            )
            .order_by(asc(HoldingLot.purchase_date), asc(HoldingLot.created_at))
            .all()
        )

    @staticmethod
    def recompute_cost_basis(db: Session, holding: Holding) -> Decimal:
        """Sum of quantity_remaining * cost_per_share over open lots."""
        db.flush()
        return sum(
            (
                Decimal(lot.quantity_remaining) * Decimal(lot.cost_per_share)
                for lot in LotTracker.open_lots(db, holding.id)
            ),
            ZERO,
        )

    # --- Lot primitives ---

    @staticmethod
    def open_lot(
        db: Session,
        holding: Holding,
        quantity: Decimal,
        cost_per_share: Decimal,
        purchase_date: date,
        transaction_id: str | None = None,
        source: str = "transaction",
    ) -> HoldingLot:
        """Create an open lot for ``holding``."""
        lot = HoldingLot(
            user_id=holding.user_id,
            account_id=holding.account_id,
            holding_id=holding.id,
            transaction_id=transaction_id,
            symbol=holding.symbol,
            purchase_date=purchase_date,
            quantity=quantity,
            quantity_remaining=quantity,
            cost_per_share=cost_per_share,
            total_cost=quantity * cost_per_share,
            lot_status=LOT_OPEN,
            source=source,
        )
        db.add(lot)
        db.flush()
        return lot

    @staticmethod
    def consume_lots(db: Session, holding: Holding, quantity: Decimal) -> LotConsumption:
        """Consume ``quantity`` units from open lots, oldest first.

        Lots reaching zero are closed.

        Raises:
            InsufficientLotsError: If the open lots hold fewer than ``quantity``
                units. No lot is modified in that case.
        """
        lots = LotTracker.open_lots(db, holding.id)
        available = sum((Decimal(lot.quantity_remaining) for lot in lots), ZERO)
        if available < quantity:
            raise InsufficientLotsError(holding.symbol, quantity, available)

        result = LotConsumption()
        remaining = quantity
        for lot in lots:
            if remaining <= 0:
                break
            lot_remaining = Decimal(lot.quantity_remaining)
            taken = min(remaining, lot_remaining)
            lot.quantity_remaining = lot_remaining - taken
            if lot.quantity_remaining == 0:
                lot.lot_status = LOT_CLOSED
            result.quantity += taken
            result.cost_basis_removed += taken * Decimal(lot.cost_per_share)
            result.lots_touched.append(lot)
            remaining -= taken

        db.flush()
        return result

    # --- Holding refresh ---

    @staticmethod
    def _set_quantity(
        db: Session,
        holding: Holding,
        quantity: Decimal,
        current_price: Decimal | None,
    ) -> Holding | None:
        """Store the new quantity, or delete the holding if it is no longer positive."""
        if quantity <= 0:
            logger.info(
                "Holding %s in account %s fully disposed, deleting",
                holding.symbol,
                holding.account_id,
            )
            db.delete(holding)
            db.flush()
            return None

        holding.quantity = quantity
        if current_price is not None:
            holding.current_price = current_price
        holding.current_value = quantity * Decimal(holding.current_price)
        return holding

    # --- Forward ---

    @staticmethod
    def apply_buy(
        db: Session,
        transaction,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
        current_price: Decimal | None = None,
        lot_source: str = "transaction",
    ) -> Holding:
        """Open a lot and add ``quantity`` at ``price`` to the holding.

        Creates the holding on first acquisition.
        """
        holding = LotTracker.find_holding(db, transaction.account_id, symbol)
        if holding is None:
            holding = Holding(
                user_id=transaction.user_id,
                account_id=transaction.account_id,
                symbol=symbol.upper(),
                name=symbol.upper(),
                asset_type=asset_type_for(transaction.transaction_type),
                quantity=ZERO,
                cost_basis=ZERO,
                current_price=current_price if current_price is not None else price,
                current_value=ZERO,
                import_source="manual",
            )
            db.add(holding)
            db.flush()

        LotTracker.open_lot(
            db,
            holding,
            quantity,
            price,
            transaction.transaction_date,
            transaction_id=transaction.id,
            source=lot_source,
        )
        holding.cost_basis = Decimal(holding.cost_basis) + quantity * price
        LotTracker._set_quantity(
            db, holding, Decimal(holding.quantity) + quantity, current_price
        )
        db.flush()
        logger.debug("Bought %s %s at %s (txn %s)", quantity, symbol, price, transaction.id)
        return holding

    @staticmethod
    def apply_sell(
        db: Session,
        transaction,
        symbol: str,
        quantity: Decimal,
        current_price: Decimal | None = None,
        sale_price: Decimal | None = None,
    ) -> LotConsumption:
        """Consume lots FIFO and reduce the holding.

        Cost basis is recomputed from the remaining open lots. When
        ``sale_price`` is given the realized gain is written to the sell
        transaction's metadata. The returned consumption carries the
        holding, or None if it was deleted.

        Raises:
            InsufficientLotsError: If there is no holding or not enough open units.
        """
        holding = LotTracker.find_holding(db, transaction.account_id, symbol)
        if holding is None:
            raise InsufficientLotsError(symbol.upper(), quantity, ZERO)

        consumption = LotTracker.consume_lots(db, holding, quantity)
        new_quantity = Decimal(holding.quantity) - quantity
        if new_quantity > 0:
            holding.cost_basis = LotTracker.recompute_cost_basis(db, holding)
        consumption.holding = LotTracker._set_quantity(db, holding, new_quantity, current_price)

        if sale_price is not None:
            consumption.proceeds = quantity * sale_price
            LotTracker._record_realized_gain(transaction, consumption.realized_gain)
        db.flush()
        logger.debug(
            "Sold %s %s (txn %s), realized %s",
            quantity,
            symbol,
            transaction.id,
            consumption.realized_gain,
        )
        return consumption

    @staticmethod
    def _record_realized_gain(transaction, gain: Decimal | None) -> None:
        metadata = dict(transaction.transaction_metadata or {})
        if gain is None:
            metadata.pop("realized_gain", None)
        else:
            metadata["realized_gain"] = str(gain)
        # JSON column: assign a new dict so the change is tracked
        transaction.transaction_metadata = metadata or None

    # --- Reverse ---

    @staticmethod
    def reverse_buy(
        db: Session,
        transaction,
        symbol: str,
        quantity: Decimal,
    ) -> Holding | None:
        """Remove a buy: delete its lots and take back its quantity.

        Returns the holding, or None if it no longer exists.
        """
        lots = (
            db.query(HoldingLot)
            .filter(HoldingLot.transaction_id == transaction.id)
            .all()
        )
        for lot in lots:
            db.delete(lot)
        db.flush()

        holding = LotTracker.find_holding(db, transaction.account_id, symbol)
        if holding is None:
            return None

        new_quantity = Decimal(holding.quantity) - quantity
        if new_quantity > 0:
            holding.cost_basis = LotTracker.recompute_cost_basis(db, holding)
        result = LotTracker._set_quantity(db, holding, new_quantity, None)
        db.flush()
        return result

    @staticmethod
    def reverse_sell(
        db: Session,
        transaction,
        symbol: str,
        quantity: Decimal,
        price: Decimal,
    ) -> Holding:
        """Put back the units of a sell at the sell price.

        The originally consumed lots are not restored; a synthetic lot at
        the sell price is opened instead, and the holding is recreated if
        the sell had closed it out.
        """
        holding = LotTracker.find_holding(db, transaction.account_id, symbol)
        if holding is None:
            holding = Holding(
                user_id=transaction.user_id,
                account_id=transaction.account_id,
                symbol=symbol.upper(),
                name=symbol.upper(),
                asset_type=asset_type_for(transaction.transaction_type),
                quantity=ZERO,
                cost_basis=ZERO,
                current_price=price,
                current_value=ZERO,
                import_source="manual",
            )
            db.add(holding)
            db.flush()

        LotTracker.open_lot(
            db,
            holding,
            quantity,
            price,
            transaction.transaction_date,
            transaction_id=transaction.id,
            source="reversal",
        )
        holding.cost_basis = Decimal(holding.cost_basis) + quantity * price
        LotTracker._set_quantity(db, holding, Decimal(holding.quantity) + quantity, None)
        LotTracker._record_realized_gain(transaction, None)
        db.flush()
        return holding

    # --- Aggregation ---

    @staticmethod
    def lot_summary(db: Session, holding: Holding) -> LotSummary:
        lots = LotTracker.open_lots(db, holding.id)
        return LotSummary(
            holding_id=holding.id,
            symbol=holding.symbol,
            lot_count=len(lots),
            open_quantity=sum((Decimal(lot.quantity_remaining) for lot in lots), ZERO),
            lot_cost_basis=sum(
                (Decimal(lot.quantity_remaining) * Decimal(lot.cost_per_share) for lot in lots),
                ZERO,
            ),
            stored_quantity=Decimal(holding.quantity),
            stored_cost_basis=Decimal(holding.cost_basis),
        )
