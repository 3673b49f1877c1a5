"""Balance applier/reverser.

Applies the effect of a single transaction to its account's balance and,
for trading types, to the account's holdings and lots. Investment accounts
are valued at cash plus the market value of their securities, so their
balance is re-derived from holdings after every change. Reversal undoes the
same effect. Each call is one unit of work: holdings and lots are written
first, the balance last, then the CASH holding is re-synced and the
transaction's ``ledger_applied`` marker flipped, all inside a SAVEPOINT so
a failure at any step leaves nothing behind.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.exceptions import MarketDataError
from integrations.market_data_protocol import PriceSource
from models import Account, Transaction
from services.cash_sync_service import CashSyncService, cash_position
from services.exceptions import (
    InsufficientLotsError,
    LedgerError,
    NotFoundError,
    TradeDataError,
)
from services.investment_account_service import InvestmentAccountService
from services.ledger_rules import ZERO, Direction, HoldingsAction, effect, is_investment_category
from services.lot_tracker import LotTracker
from services.transaction_metadata import MissingMetadata, resolve_metadata

logger = logging.getLogger(__name__)


@dataclass
class LedgerResult:
    """Outcome of an apply or reverse.

    ``error_kind`` is one of ``not_found``, ``validation``, ``consistency``,
    ``external`` or None.
    """

    success: bool
    error: str | None = None
    error_kind: str | None = None
    balance_delta: Decimal = ZERO

    @classmethod
    def ok(cls, balance_delta: Decimal = ZERO) -> "LedgerResult":
        return cls(success=True, balance_delta=balance_delta)

    @classmethod
    def failed(cls, error: str, error_kind: str | None = None) -> "LedgerResult":
        return cls(success=False, error=error, error_kind=error_kind)


@dataclass(frozen=True)
class _Trade:
    symbol: str
    quantity: Decimal
    price: Decimal


class BalanceService:
    """Applies and reverses transactions against balances and holdings.

    Args:
        price_source: Supplies current prices for holdings touched by a
            trade. When it has no price the trade price is used.
        cash_sync: Collaborator keeping the CASH holding in step with the
            balance.
    """

    def __init__(
        self,
        price_source: PriceSource | None = None,
        cash_sync: CashSyncService | None = None,
    ):
        self._price_source = price_source
        self._cash_sync = cash_sync or CashSyncService()

    # --- Public API ---

    def apply(self, db: Session, transaction: Transaction) -> LedgerResult:
        """Apply ``transaction`` to its account. Safe to call twice."""
        if transaction.ledger_applied:
            logger.debug("Transaction %s already applied, skipping", transaction.id)
            return LedgerResult.ok()
        return self._run(db, transaction, Direction.FORWARD)

    def reverse(self, db: Session, transaction: Transaction) -> LedgerResult:
        """Undo ``transaction``'s effect on its account. Safe to call twice."""
        if not transaction.ledger_applied:
            logger.debug("Transaction %s not applied, nothing to reverse", transaction.id)
            return LedgerResult.ok()
        return self._run(db, transaction, Direction.REVERSE)

    # --- Internals ---

    def _run(self, db: Session, transaction: Transaction, direction: Direction) -> LedgerResult:
        verb = "apply" if direction is Direction.FORWARD else "reverse"

        if not transaction.account_id:
            # Nothing to post to; the marker still tracks the call
            transaction.ledger_applied = direction is Direction.FORWARD
            db.flush()
            return LedgerResult.ok()

        account = db.get(Account, transaction.account_id)
        if account is None:
            logger.warning(
                "Cannot %s transaction %s: account %s not found",
                verb,
                transaction.id,
                transaction.account_id,
            )
            return LedgerResult.failed(
                f"Account {transaction.account_id} not found", "not_found"
            )

        try:
            ledger_effect = effect(
                transaction.transaction_type,
                account.category,
                transaction.amount,
                direction,
            )
        except ValueError as e:
            return LedgerResult.failed(str(e), "validation")

        try:
            with db.begin_nested():
                cash = cash_position(db, account)
                self._apply_holdings(db, transaction, ledger_effect.holdings_action)

                if is_investment_category(account.category):
                    InvestmentAccountService.update_account_balance(
                        db, account, cash + ledger_effect.balance_delta
                    )
                elif ledger_effect.balance_delta != 0:
                    account.current_balance = (
                        Decimal(account.current_balance or ZERO) + ledger_effect.balance_delta
                    )
                    db.flush()

                self._cash_sync.sync_account(db, account)
                transaction.ledger_applied = direction is Direction.FORWARD
                db.flush()
        except (TradeDataError, InsufficientLotsError) as e:
            logger.warning("Failed to %s transaction %s: %s", verb, transaction.id, e)
            return LedgerResult.failed(str(e), "validation")
        except NotFoundError as e:
            logger.warning("Failed to %s transaction %s: %s", verb, transaction.id, e)
            return LedgerResult.failed(str(e), "not_found")
        except LedgerError as e:
            logger.warning("Failed to %s transaction %s: %s", verb, transaction.id, e)
            return LedgerResult.failed(str(e), "consistency")
        except Exception as e:
            logger.exception("Unexpected error during %s of transaction %s", verb, transaction.id)
            return LedgerResult.failed(str(e))

        logger.info(
            "%s transaction %s (%s %s) on account %s: balance delta %s",
            "Applied" if direction is Direction.FORWARD else "Reversed",
            transaction.id,
            transaction.transaction_type,
            transaction.amount,
            account.id,
            ledger_effect.balance_delta,
        )
        return LedgerResult.ok(ledger_effect.balance_delta)

    def _apply_holdings(
        self, db: Session, transaction: Transaction, action: HoldingsAction
    ) -> None:
        if action is HoldingsAction.NONE:
            return

        trade = self._trade_details(transaction)
        if trade is None:
            return

        if action is HoldingsAction.ACQUIRE:
            LotTracker.apply_buy(
                db,
                transaction,
                trade.symbol,
                trade.quantity,
                trade.price,
                current_price=self._current_price(trade.symbol),
            )
        elif action is HoldingsAction.DISPOSE:
            LotTracker.apply_sell(
                db,
                transaction,
                trade.symbol,
                trade.quantity,
                current_price=self._current_price(trade.symbol),
                sale_price=trade.price,
            )
        elif action is HoldingsAction.UNDO_ACQUIRE:
            LotTracker.reverse_buy(db, transaction, trade.symbol, trade.quantity)
        elif action is HoldingsAction.UNDO_DISPOSE:
            LotTracker.reverse_sell(db, transaction, trade.symbol, trade.quantity, trade.price)

    @staticmethod
    def _trade_details(transaction: Transaction) -> _Trade | None:
        """Ticker, quantity and price for a trading transaction.

        Returns None when the row carries no trade details at all; the
        balance side still applies. Partial or non-positive details raise.
        """
        resolved = resolve_metadata(transaction)
        if isinstance(resolved, MissingMetadata):
            return None

        if not resolved.ticker:
            raise TradeDataError(f"Transaction {transaction.id} has no ticker")
        if resolved.quantity is None or resolved.quantity <= 0:
            raise TradeDataError(
                f"Transaction {transaction.id} has invalid quantity: {resolved.quantity}"
            )
        if resolved.price is None or resolved.price <= 0:
            raise TradeDataError(
                f"Transaction {transaction.id} has invalid price: {resolved.price}"
            )
        return _Trade(resolved.ticker, resolved.quantity, resolved.price)

    def _current_price(self, symbol: str) -> Decimal | None:
        if self._price_source is None:
            return None
        try:
            return self._price_source.get_current_price(symbol)
        except MarketDataError as e:
            logger.warning("Price lookup failed for %s, using trade price: %s", symbol, e)
            return None
