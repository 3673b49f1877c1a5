"""Market-value balances for investment-category accounts.

An investment account's balance is its cash position plus the market value
of its securities. Trades only move the securities side (the ledger rules
suppress their cash legs); deposits, dividends, interest and fees move the
cash position. With the CASH holding mirroring that position, the balance
equals the sum of the account's holding values whenever cash is not
negative.
"""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from models import Account, Holding
from services.cash_sync_service import securities_value
from services.ledger_rules import ZERO, is_investment_category

logger = logging.getLogger(__name__)


class InvestmentAccountService:
    """Derives investment account balances from holdings value."""

    @staticmethod
    def market_value(db: Session, account_id: str) -> Decimal:
        """Sum of ``current_value`` over every holding of the account, CASH included."""
        holdings = db.query(Holding).filter(Holding.account_id == account_id).all()
        return sum((Decimal(h.current_value or ZERO) for h in holdings), ZERO)

    @staticmethod
    def update_account_balance(db: Session, account: Account, cash: Decimal) -> Decimal | None:
        """Set ``account``'s balance to ``cash`` plus its securities value.

        Returns the new balance, or None for accounts outside the investment
        category, which are left untouched. The CASH holding is not synced
        here; callers do that once the balance is final.
        """
        if not is_investment_category(account.category):
            return None

        new_balance = cash + securities_value(db, account.id)
        if new_balance != Decimal(account.current_balance or ZERO):
            logger.debug(
                "Investment account %s balance %s -> %s",
                account.id,
                account.current_balance,
                new_balance,
            )
        account.current_balance = new_balance
        db.flush()
        return new_balance

