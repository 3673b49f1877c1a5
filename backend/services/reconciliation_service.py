"""Reconciliation auditor.

Replays each account's transaction log from zero and compares the result
with the stored balance and holdings. Auditing is read-only; the repair
operations (:meth:`ReconciliationService.recalculate_account_balance`,
:meth:`ReconciliationService.recalculate_all_account_balances`,
:meth:`ReconciliationService.rebuild_account_holdings`) are destructive
and only run when explicitly invoked.

The replay sign table below is written independently of the ledger rules
used by the applier, so a defect in one shows up as a discrepancy instead
of being reproduced by the other.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from config import settings
from models import Account, Holding, Transaction
from services.cash_sync_service import CASH_SYMBOL, CashSyncService, cash_position, securities_value
from services.exceptions import InsufficientLotsError
from services.investment_account_service import InvestmentAccountService
from services.ledger_rules import is_investment_category
from services.lot_tracker import LotTracker
from services.transaction_metadata import MissingMetadata, resolve_metadata

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

_CREDIT_TYPES = {
    "income",
    "dividend",
    "stock_dividend",
    "etf_dividend",
    "interest",
    "deposit",
    "transfer_in",
    "sell",
    "stock_sell",
    "etf_sell",
    "crypto_sell",
    "option_sell",
    "bond_sell",
    "bond_maturity",
}

_DEBIT_TYPES = {
    "expense",
    "withdrawal",
    "transfer_out",
    "fee",
    "buy",
    "stock_buy",
    "etf_buy",
    "crypto_buy",
    "option_buy",
    "bond_buy",
}

# Position moves whose cash leg is carried by the investment holdings, not the balance
_TRADE_TYPES = {
    "buy",
    "stock_buy",
    "etf_buy",
    "crypto_buy",
    "option_buy",
    "bond_buy",
    "sell",
    "stock_sell",
    "etf_sell",
    "crypto_sell",
    "option_sell",
    "bond_sell",
    "bond_maturity",
    "crypto_stake",
    "crypto_unstake",
}

_REPLAY_BUYS = {"buy", "stock_buy", "etf_buy", "crypto_buy", "option_buy", "bond_buy"}
_REPLAY_SELLS = {
    "sell",
    "stock_sell",
    "etf_sell",
    "crypto_sell",
    "option_sell",
    "bond_sell",
    "bond_maturity",
}


def _signed_amount(txn: Transaction, category: str | None = None) -> Decimal:
    """Signed cash effect of ``txn`` as replayed by the auditor."""
    txn_type = (txn.transaction_type or "").lower()
    amount = Decimal(txn.amount)
    if category == settings.INVESTMENT_CATEGORY and txn_type in _TRADE_TYPES:
        return ZERO
    if txn_type in _CREDIT_TYPES:
        return amount
    if txn_type in _DEBIT_TYPES:
        return -amount
    return ZERO


@dataclass
class AccountBalanceAudit:
    account_id: str
    account_name: str
    current_balance: Decimal
    calculated_balance: Decimal
    holdings_value: Decimal
    total_value: Decimal
    difference: Decimal
    transaction_count: int
    has_discrepancy: bool


@dataclass
class OrphanedTransaction:
    id: str
    description: str | None
    amount: Decimal
    transaction_date: date
    account_id: str | None
    reason: str


@dataclass
class HoldingAudit:
    """Stored holding vs a FIFO replay of the account's buys and sells.

    ``replayed_cost_basis`` is informational: a reversed sell re-enters at
    the sell price, which a replay of the surviving log cannot see. A
    discrepancy is a quantity mismatch or stored cost basis drifting from
    the holding's own open lots.
    """

    account_id: str
    symbol: str
    stored_quantity: Decimal
    replayed_quantity: Decimal
    stored_cost_basis: Decimal
    replayed_cost_basis: Decimal
    lot_cost_basis: Decimal
    has_discrepancy: bool


@dataclass
class DataAuditReport:
    account_audits: list[AccountBalanceAudit] = field(default_factory=list)
    orphaned_transactions: list[OrphanedTransaction] = field(default_factory=list)
    holding_audits: list[HoldingAudit] = field(default_factory=list)
    total_discrepancies: int = 0
    accounts_with_issues: int = 0


@dataclass
class RepairResult:
    success: bool
    error: str | None = None
    new_balance: Decimal | None = None


@dataclass
class BulkRepairResult:
    updated_count: int = 0
    failed_count: int = 0
    errors: list[dict] = field(default_factory=list)


@dataclass
class RebuildResult:
    success: bool
    holdings_rebuilt: int = 0
    transactions_replayed: int = 0
    errors: list[str] = field(default_factory=list)


class ReconciliationService:
    """Audits stored balances and holdings against the transaction log."""

    @staticmethod
    def _account_transactions(db: Session, account: Account) -> list[Transaction]:
        return (
            db.query(Transaction)
            .filter(
                Transaction.user_id == account.user_id,
                Transaction.account_id == account.id,
            )
            .order_by(Transaction.transaction_date.asc(), Transaction.created_at.asc())
            .all()
        )

    @staticmethod
    def _get_account(db: Session, user_id: str, account_id: str) -> Account | None:
        return (
            db.query(Account)
            .filter(Account.id == account_id, Account.user_id == user_id)
            .first()
        )

    # --- Audit ---

    @staticmethod
    def audit_account(db: Session, account: Account) -> AccountBalanceAudit:
        """Replay ``account``'s transactions in date order and compare balances.

        For investment accounts the expected balance is the replayed cash
        plus the current market value of the securities held.
        """
        transactions = ReconciliationService._account_transactions(db, account)
        calculated = sum(
            (_signed_amount(txn, account.category) for txn in transactions), ZERO
        )
        holdings_value = InvestmentAccountService.market_value(db, account.id)
        investment = is_investment_category(account.category)
        if investment:
            # Replayed cash plus the securities the account holds now
            calculated += securities_value(db, account.id)

        current = Decimal(account.current_balance or ZERO)
        difference = current - calculated
        has_discrepancy = abs(difference) > settings.BALANCE_TOLERANCE
        if has_discrepancy:
            logger.warning(
                "Balance discrepancy on account %s (%s): stored %s, replayed %s",
                account.id,
                account.name,
                current,
                calculated,
            )

        return AccountBalanceAudit(
            account_id=account.id,
            account_name=account.name,
            current_balance=current,
            calculated_balance=calculated,
            holdings_value=holdings_value,
            total_value=calculated if investment else calculated + holdings_value,
            difference=difference,
            transaction_count=len(transactions),
            has_discrepancy=has_discrepancy,
        )

    @staticmethod
    def audit_holdings(db: Session, account: Account) -> list[HoldingAudit]:
        """Compare stored holdings with an in-memory FIFO replay of buys and sells."""
        # symbol -> list of [quantity_remaining, price], oldest first
        replay: dict[str, list[list[Decimal]]] = defaultdict(list)

        for txn in ReconciliationService._account_transactions(db, account):
            txn_type = (txn.transaction_type or "").lower()
            if txn_type not in _REPLAY_BUYS and txn_type not in _REPLAY_SELLS:
                continue
            resolved = resolve_metadata(txn)
            if isinstance(resolved, MissingMetadata) or not resolved.ticker:
                continue
            if not resolved.quantity or resolved.quantity <= 0:
                continue

            lots = replay[resolved.ticker]
            if txn_type in _REPLAY_BUYS:
                lots.append([resolved.quantity, resolved.price or ZERO])
                continue

            remaining = resolved.quantity
            while remaining > 0 and lots:
                taken = min(remaining, lots[0][0])
                lots[0][0] -= taken
                remaining -= taken
                if lots[0][0] == 0:
                    lots.pop(0)
            if remaining > 0:
                logger.warning(
                    "Replay of %s in account %s sells %s more than was bought",
                    resolved.ticker,
                    account.id,
                    remaining,
                )

        stored = {
            h.symbol: h
            for h in db.query(Holding).filter(Holding.account_id == account.id).all()
            if h.symbol != CASH_SYMBOL
        }

        audits = []
        for symbol in sorted(set(stored) | {s for s, lots in replay.items() if lots}):
            lots = replay.get(symbol, [])
            replayed_quantity = sum((q for q, _ in lots), ZERO)
            replayed_cost = sum((q * p for q, p in lots), ZERO)

            holding = stored.get(symbol)
            if holding is not None:
                summary = LotTracker.lot_summary(db, holding)
                stored_quantity = summary.stored_quantity
                stored_cost = summary.stored_cost_basis
                lot_cost = summary.lot_cost_basis
            else:
                stored_quantity = stored_cost = lot_cost = ZERO

            has_discrepancy = (
                stored_quantity != replayed_quantity
                or abs(stored_cost - lot_cost) > settings.BALANCE_TOLERANCE
            )
            if has_discrepancy:
                logger.warning(
                    "Holding discrepancy for %s in account %s: stored qty %s, replayed qty %s",
                    symbol,
                    account.id,
                    stored_quantity,
                    replayed_quantity,
                )
            audits.append(
                HoldingAudit(
                    account_id=account.id,
                    symbol=symbol,
                    stored_quantity=stored_quantity,
                    replayed_quantity=replayed_quantity,
                    stored_cost_basis=stored_cost,
                    replayed_cost_basis=replayed_cost,
                    lot_cost_basis=lot_cost,
                    has_discrepancy=has_discrepancy,
                )
            )
        return audits

    @staticmethod
    def find_orphaned_transactions(db: Session, user_id: str) -> list[OrphanedTransaction]:
        """Transactions with no account, or pointing at an account the user does not own.

        An account belonging to someone else counts as missing: the
        per-account audit only replays the owner's transactions, so such a
        row would otherwise never be looked at.
        """
        account_ids = {
            row.id for row in db.query(Account.id).filter(Account.user_id == user_id).all()
        }
        orphans = []
        for txn in (
            db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.transaction_date.asc())
            .all()
        ):
            if txn.account_id is None:
                reason = "No account associated"
            elif txn.account_id not in account_ids:
                reason = "Account does not exist"
            else:
                continue
            orphans.append(
                OrphanedTransaction(
                    id=txn.id,
                    description=txn.description,
                    amount=Decimal(txn.amount),
                    transaction_date=txn.transaction_date,
                    account_id=txn.account_id,
                    reason=reason,
                )
            )
        return orphans

    @staticmethod
    def audit_user(db: Session, user_id: str) -> DataAuditReport:
        """Audit every account of a user, plus orphaned transactions."""
        report = DataAuditReport()
        accounts = (
            db.query(Account).filter(Account.user_id == user_id).order_by(Account.name).all()
        )

        problem_accounts = set()
        for account in accounts:
            audit = ReconciliationService.audit_account(db, account)
            report.account_audits.append(audit)
            if audit.has_discrepancy:
                problem_accounts.add(account.id)

            holding_audits = ReconciliationService.audit_holdings(db, account)
            report.holding_audits.extend(holding_audits)
            if any(h.has_discrepancy for h in holding_audits):
                problem_accounts.add(account.id)

        report.orphaned_transactions = ReconciliationService.find_orphaned_transactions(
            db, user_id
        )
        report.total_discrepancies = sum(
            1 for a in report.account_audits if a.has_discrepancy
        ) + sum(1 for h in report.holding_audits if h.has_discrepancy)
        report.accounts_with_issues = len(problem_accounts)

        logger.info(
            "Audit for user %s: %d accounts, %d discrepancies, %d orphaned transactions",
            user_id,
            len(accounts),
            report.total_discrepancies,
            len(report.orphaned_transactions),
        )
        return report

    # --- Repair ---

    @staticmethod
    def _repair_balance(db: Session, account: Account) -> Decimal:
        """Overwrite the stored balance with the replayed one."""
        audit = ReconciliationService.audit_account(db, account)
        account.current_balance = audit.calculated_balance
        db.flush()
        CashSyncService.sync_account(db, account)
        logger.info(
            "Recalculated balance for account %s: %s -> %s",
            account.id,
            audit.current_balance,
            audit.calculated_balance,
        )
        return audit.calculated_balance

    @staticmethod
    def recalculate_account_balance(db: Session, user_id: str, account_id: str) -> RepairResult:
        """Set one account's balance to its replayed value."""
        account = ReconciliationService._get_account(db, user_id, account_id)
        if account is None:
            return RepairResult(success=False, error="Account not found")

        try:
            with db.begin_nested():
                new_balance = ReconciliationService._repair_balance(db, account)
        except Exception as e:
            logger.warning("Balance repair failed for account %s", account_id, exc_info=True)
            return RepairResult(success=False, error=str(e))
        return RepairResult(success=True, new_balance=new_balance)

    @staticmethod
    def recalculate_all_account_balances(db: Session, user_id: str) -> BulkRepairResult:
        """Repair every account of a user; one failure does not stop the rest."""
        result = BulkRepairResult()
        accounts = (
            db.query(Account).filter(Account.user_id == user_id).order_by(Account.name).all()
        )
        for account in accounts:
            try:
                with db.begin_nested():
                    ReconciliationService._repair_balance(db, account)
                result.updated_count += 1
            except Exception as e:
                logger.warning(
                    "Balance repair failed for account %s", account.id, exc_info=True
                )
                result.failed_count += 1
                result.errors.append({"account_id": account.id, "error": str(e)})

        logger.info(
            "Bulk balance repair for user %s: %d updated, %d failed",
            user_id,
            result.updated_count,
            result.failed_count,
        )
        return result

    @staticmethod
    def rebuild_account_holdings(db: Session, user_id: str, account_id: str) -> RebuildResult:
        """Discard an account's non-cash holdings and lots and replay its trades.

        Current prices of the discarded holdings are carried over and sells
        get their realized gain recorded again. An investment account keeps
        its cash position and has its balance re-derived from the rebuilt
        holdings.
        """
        account = ReconciliationService._get_account(db, user_id, account_id)
        if account is None:
            return RebuildResult(success=False, errors=["Account not found"])

        result = RebuildResult(success=True)
        try:
            with db.begin_nested():
                cash = cash_position(db, account)
                existing = (
                    db.query(Holding)
                    .filter(Holding.account_id == account.id, Holding.symbol != CASH_SYMBOL)
                    .all()
                )
                prices = {h.symbol: Decimal(h.current_price) for h in existing}
                for holding in existing:
                    db.delete(holding)
                db.flush()

                for txn in ReconciliationService._account_transactions(db, account):
                    txn_type = (txn.transaction_type or "").lower()
                    if txn_type not in _REPLAY_BUYS and txn_type not in _REPLAY_SELLS:
                        continue
                    resolved = resolve_metadata(txn)
                    if isinstance(resolved, MissingMetadata) or not resolved.ticker:
                        continue
                    if not resolved.quantity or resolved.quantity <= 0:
                        result.errors.append(f"Transaction {txn.id}: invalid quantity")
                        continue

                    if txn_type in _REPLAY_BUYS:
                        if not resolved.price or resolved.price <= 0:
                            result.errors.append(f"Transaction {txn.id}: invalid price")
                            continue
                        LotTracker.apply_buy(
                            db,
                            txn,
                            resolved.ticker,
                            resolved.quantity,
                            resolved.price,
                            current_price=prices.get(resolved.ticker),
                            lot_source="replay",
                        )
                    else:
                        try:
                            with db.begin_nested():
                                LotTracker.apply_sell(
                                    db,
                                    txn,
                                    resolved.ticker,
                                    resolved.quantity,
                                    current_price=prices.get(resolved.ticker),
                                    sale_price=resolved.price,
                                )
                        except InsufficientLotsError as e:
                            result.errors.append(f"Transaction {txn.id}: {e}")
                            continue
                    result.transactions_replayed += 1

                result.holdings_rebuilt = (
                    db.query(Holding)
                    .filter(Holding.account_id == account.id, Holding.symbol != CASH_SYMBOL)
                    .count()
                )
                if InvestmentAccountService.update_account_balance(db, account, cash) is not None:
                    CashSyncService.sync_account(db, account)
        except Exception as e:
            logger.warning("Holdings rebuild failed for account %s", account_id, exc_info=True)
            return RebuildResult(success=False, errors=[str(e)])

        logger.info(
            "Rebuilt holdings for account %s: %d holdings from %d trades (%d skipped)",
            account_id,
            result.holdings_rebuilt,
            result.transactions_replayed,
            len(result.errors),
        )
        return result

    # --- Totals ---

    @staticmethod
    def transaction_totals(db: Session, user_id: str, account_id: str | None = None) -> dict:
        """Signed total, count and per-type amount totals for a user's transactions."""
        query = db.query(Transaction).filter(Transaction.user_id == user_id)
        if account_id is not None:
            query = query.filter(Transaction.account_id == account_id)
        transactions = query.all()

        by_type: dict[str, Decimal] = defaultdict(lambda: ZERO)
        total = ZERO
        for txn in transactions:
            by_type[txn.transaction_type] += Decimal(txn.amount)
            total += _signed_amount(txn)

        return {"total": total, "count": len(transactions), "by_type": dict(by_type)}
