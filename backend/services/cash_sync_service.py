"""Keeps a CASH holding in step with a cash-bearing account's cash position."""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account, Holding
from services.ledger_rules import ZERO, is_investment_category

logger = logging.getLogger(__name__)

CASH_SYMBOL = "CASH"

_CASH_CATEGORY_KEYWORDS = ("cash", "bank", "checking", "savings", "money market")


def is_cash_account(account: Account) -> bool:
    """Cash-category accounts and plain asset accounts carry a CASH holding."""
    category = (account.category or "").lower()
    if any(keyword in category for keyword in _CASH_CATEGORY_KEYWORDS):
        return True
    return account.account_type == "asset"


def securities_value(db: Session, account_id: str) -> Decimal:
    """Market value of an account's holdings other than CASH."""
    holdings = (
        db.query(Holding)
        .filter(Holding.account_id == account_id, Holding.symbol != CASH_SYMBOL)
        .all()
    )
    return sum((Decimal(h.current_value or ZERO) for h in holdings), ZERO)


def cash_position(db: Session, account: Account) -> Decimal:
    """Cash held in ``account``.

    For investment accounts the balance also carries the securities, so the
    cash position is what is left after taking their market value out.
    """
    balance = Decimal(account.current_balance or ZERO)
    if is_investment_category(account.category):
        return balance - securities_value(db, account.id)
    return balance


class CashSyncService:
    """Mirrors an account's cash position into a CASH holding priced at 1."""

    @staticmethod
    def sync_account(db: Session, account: Account) -> Holding | None:
        """Create, update or delete the CASH holding for ``account``.

        Quantity, cost basis and value all equal the cash position. A
        non-positive position removes the holding. Returns the holding, or
        None if the account carries no cash holding afterwards.
        """
        if not is_cash_account(account):
            return None

        cash = cash_position(db, account)
        holding = (
            db.query(Holding)
            .filter(Holding.account_id == account.id, Holding.symbol == CASH_SYMBOL)
            .first()
        )

        if cash <= 0:
            if holding is not None:
                logger.debug("Removing CASH holding for account %s", account.id)
                db.delete(holding)
                db.flush()
            return None

        if holding is None:
            holding = Holding(
                user_id=account.user_id,
                account_id=account.id,
                symbol=CASH_SYMBOL,
                name="Cash",
                asset_type="cash",
                current_price=Decimal("1"),
                import_source="system_generated",
            )
            db.add(holding)

        holding.quantity = cash
        holding.cost_basis = cash
        holding.current_value = cash
        holding.current_price = Decimal("1")
        db.flush()
        return holding
