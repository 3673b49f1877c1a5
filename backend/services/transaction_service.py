"""Transaction lifecycle: create, delete, replace and statement promotion.

Every write of the ledger goes through :class:`BalanceService`, so a
transaction row exists exactly when its effect is reflected in balances
and holdings. Services ``flush()``; the API layer commits.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account, ParsedTrade, StatementImport, Transaction
from schemas.transaction import TransactionCreate, TransactionMetadataIn
from services.balance_service import BalanceService, LedgerResult
from services.exceptions import (
    AccountNotFoundError,
    ImportNotFoundError,
    ImportStateError,
    LedgerOperationError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

# Parsed statement actions -> ledger transaction types
ACTION_TYPE_MAP = {
    "BUY": "buy",
    "SELL": "sell",
    "DIVIDEND": "dividend",
}

PROMOTABLE_STATUSES = ("valid", "warning")


@dataclass
class PromotionResult:
    """Outcome of promoting an import's selected trades."""

    created_transaction_ids: list[str] = field(default_factory=list)
    failures: list[dict] = field(default_factory=list)
    skipped_count: int = 0


class TransactionService:
    """Creates and removes transactions together with their ledger effect."""

    def __init__(self, balance_service: BalanceService | None = None):
        self._balance = balance_service or BalanceService()

    # --- Queries ---

    @staticmethod
    def get_transaction(db: Session, user_id: str, transaction_id: str) -> Transaction:
        txn = (
            db.query(Transaction)
            .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
            .first()
        )
        if txn is None:
            raise TransactionNotFoundError(
                f"Transaction {transaction_id} not found", transaction_id
            )
        return txn

    @staticmethod
    def list_transactions(
        db: Session,
        user_id: str,
        account_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Transaction]:
        """Transactions for a user, newest first."""
        query = db.query(Transaction).filter(Transaction.user_id == user_id)
        if account_id is not None:
            query = query.filter(Transaction.account_id == account_id)
        if start is not None:
            query = query.filter(Transaction.transaction_date >= start)
        if end is not None:
            query = query.filter(Transaction.transaction_date <= end)
        return query.order_by(
            Transaction.transaction_date.desc(), Transaction.created_at.desc()
        ).all()

    # --- Mutations ---

    def create_transaction(
        self, db: Session, user_id: str, data: TransactionCreate
    ) -> tuple[Transaction, LedgerResult]:
        """Insert a transaction and apply it.

        The insert and the apply share a SAVEPOINT; if the apply fails the
        row is rolled back too.

        Raises:
            AccountNotFoundError: If ``data.account_id`` is not one of the user's accounts.
            LedgerOperationError: If the ledger effect could not be applied.
        """
        if data.account_id is not None:
            account = (
                db.query(Account)
                .filter(Account.id == data.account_id, Account.user_id == user_id)
                .first()
            )
            if account is None:
                raise AccountNotFoundError(
                    f"Account {data.account_id} not found", data.account_id
                )

        txn = Transaction(
            user_id=user_id,
            account_id=data.account_id,
            transaction_type=data.transaction_type,
            amount=data.amount,
            transaction_date=data.transaction_date,
            description=data.description,
            transaction_metadata=data.metadata.to_json() if data.metadata else None,
            ledger_applied=False,
        )

        savepoint = db.begin_nested()
        try:
            db.add(txn)
            db.flush()
            result = self._balance.apply(db, txn)
        except Exception:
            savepoint.rollback()
            raise

        if not result.success:
            savepoint.rollback()
            logger.warning(
                "Rejected %s transaction on account %s: %s",
                data.transaction_type,
                data.account_id,
                result.error,
            )
            raise LedgerOperationError(result)

        savepoint.commit()
        logger.info("Created transaction %s (%s %s)", txn.id, txn.transaction_type, txn.amount)
        return txn, result

    def delete_transaction(self, db: Session, user_id: str, transaction_id: str) -> LedgerResult:
        """Reverse a transaction's effect, then delete it.

        Raises:
            TransactionNotFoundError: If the transaction does not exist for the user.
            LedgerOperationError: If the reversal failed; the row is kept.
        """
        txn = self.get_transaction(db, user_id, transaction_id)

        result = self._balance.reverse(db, txn)
        if not result.success:
            raise LedgerOperationError(result)

        (
            db.query(ParsedTrade)
            .filter(ParsedTrade.transaction_id == txn.id)
            .update({ParsedTrade.transaction_id: None})
        )
        db.delete(txn)
        db.flush()
        logger.info("Deleted transaction %s", transaction_id)
        return result

    def replace_transaction(
        self, db: Session, user_id: str, transaction_id: str, data: TransactionCreate
    ) -> tuple[Transaction, LedgerResult]:
        """Edit a transaction by deleting it and creating its replacement.

        Both steps share a SAVEPOINT, so a rejected replacement leaves the
        original transaction and its effect in place.
        """
        savepoint = db.begin_nested()
        try:
            self.delete_transaction(db, user_id, transaction_id)
            new_txn, result = self.create_transaction(db, user_id, data)
        except Exception:
            savepoint.rollback()
            raise
        savepoint.commit()
        logger.info("Replaced transaction %s with %s", transaction_id, new_txn.id)
        return new_txn, result

    # --- Statement promotion ---

    @staticmethod
    def _transaction_from_trade(trade: ParsedTrade, account_id: str) -> TransactionCreate:
        action = (trade.action or "").upper()
        symbol = (trade.symbol or "").upper()
        metadata = TransactionMetadataIn(ticker=symbol or None)
        if action in ("BUY", "SELL"):
            metadata.quantity = trade.shares
            metadata.price = trade.price

        if trade.shares is not None and trade.price is not None:
            description = f"{action.title()} {trade.shares} {symbol} @ {trade.price}"
        else:
            description = f"{action.title()} {symbol}"

        return TransactionCreate(
            account_id=account_id,
            transaction_type=ACTION_TYPE_MAP[action],
            amount=abs(Decimal(trade.amount)),
            transaction_date=trade.trade_date,
            description=description,
            metadata=metadata,
        )

    def promote_parsed_trades(
        self, db: Session, user_id: str, import_id: str, account_id: str
    ) -> PromotionResult:
        """Turn an import's selected, reviewable trades into transactions.

        Each trade goes through :meth:`create_transaction`. A trade that is
        rejected is reported in ``failures``; the rest still promote.

        Raises:
            ImportNotFoundError: If the import does not exist for the user.
            ImportStateError: If the import has not completed processing.
            AccountNotFoundError: If the target account does not exist for the user.
        """
        statement_import = (
            db.query(StatementImport)
            .filter(StatementImport.id == import_id, StatementImport.user_id == user_id)
            .first()
        )
        if statement_import is None:
            raise ImportNotFoundError(f"Import {import_id} not found", import_id)
        if statement_import.status != "completed":
            raise ImportStateError(
                f"Import {import_id} is {statement_import.status}; only completed imports can be promoted"
            )

        account = (
            db.query(Account)
            .filter(Account.id == account_id, Account.user_id == user_id)
            .first()
        )
        if account is None:
            raise AccountNotFoundError(f"Account {account_id} not found", account_id)

        result = PromotionResult()
        for trade in statement_import.parsed_trades:
            if (
                not trade.is_selected
                or trade.transaction_id is not None
                or trade.validation_status not in PROMOTABLE_STATUSES
                or (trade.action or "").upper() not in ACTION_TYPE_MAP
                or trade.amount is None
                or trade.trade_date is None
            ):
                result.skipped_count += 1
                continue

            try:
                txn, _ = self.create_transaction(
                    db, user_id, self._transaction_from_trade(trade, account_id)
                )
            except LedgerOperationError as e:
                logger.warning("Could not promote parsed trade %s: %s", trade.id, e)
                result.failures.append({"trade_id": trade.id, "error": str(e)})
                continue

            trade.transaction_id = txn.id
            result.created_transaction_ids.append(txn.id)

        db.flush()
        logger.info(
            "Promoted import %s: %d created, %d failed, %d skipped",
            import_id,
            len(result.created_transaction_ids),
            len(result.failures),
            result.skipped_count,
        )
        return result
