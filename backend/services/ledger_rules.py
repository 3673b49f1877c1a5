"""Ledger rules - the signed effect of a transaction on cash and holdings.

Pure functions, no I/O. Applying and reversing a transaction both go
through :func:`effect`; the reverse direction negates the forward result
inside the same function so the two can never disagree.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from config import settings

ZERO = Decimal("0")


class TransactionType(str, Enum):
    """Known transaction types."""

    INCOME = "income"
    DIVIDEND = "dividend"
    STOCK_DIVIDEND = "stock_dividend"
    ETF_DIVIDEND = "etf_dividend"
    INTEREST = "interest"
    DEPOSIT = "deposit"
    TRANSFER_IN = "transfer_in"
    EXPENSE = "expense"
    WITHDRAWAL = "withdrawal"
    TRANSFER_OUT = "transfer_out"
    FEE = "fee"
    BUY = "buy"
    STOCK_BUY = "stock_buy"
    ETF_BUY = "etf_buy"
    CRYPTO_BUY = "crypto_buy"
    OPTION_BUY = "option_buy"
    BOND_BUY = "bond_buy"
    SELL = "sell"
    STOCK_SELL = "stock_sell"
    ETF_SELL = "etf_sell"
    CRYPTO_SELL = "crypto_sell"
    OPTION_SELL = "option_sell"
    BOND_SELL = "bond_sell"
    BOND_MATURITY = "bond_maturity"
    CRYPTO_STAKE = "crypto_stake"
    CRYPTO_UNSTAKE = "crypto_unstake"


class Direction(str, Enum):
    FORWARD = "forward"
    REVERSE = "reverse"


class HoldingsAction(str, Enum):
    """What the lot tracker must do for a transaction."""

    NONE = "none"
    ACQUIRE = "acquire"
    DISPOSE = "dispose"
    UNDO_ACQUIRE = "undo_acquire"
    UNDO_DISPOSE = "undo_dispose"


@dataclass(frozen=True)
class LedgerEffect:
    """Signed balance delta plus the holdings action for one transaction."""

    balance_delta: Decimal
    holdings_action: HoldingsAction

    @property
    def is_noop(self) -> bool:
        return self.balance_delta == ZERO and self.holdings_action is HoldingsAction.NONE


NO_EFFECT = LedgerEffect(ZERO, HoldingsAction.NONE)

BUY_TYPES = frozenset({
    TransactionType.BUY,
    TransactionType.STOCK_BUY,
    TransactionType.ETF_BUY,
    TransactionType.CRYPTO_BUY,
    TransactionType.OPTION_BUY,
    TransactionType.BOND_BUY,
})

SELL_TYPES = frozenset({
    TransactionType.SELL,
    TransactionType.STOCK_SELL,
    TransactionType.ETF_SELL,
    TransactionType.CRYPTO_SELL,
    TransactionType.OPTION_SELL,
    TransactionType.BOND_SELL,
    TransactionType.BOND_MATURITY,
})

# Position moves with no cash leg
STAKE_TYPES = frozenset({
    TransactionType.CRYPTO_STAKE,
    TransactionType.CRYPTO_UNSTAKE,
})

TRADING_TYPES = BUY_TYPES | SELL_TYPES | STAKE_TYPES

# Cash sign per type. Trading types are listed here too; the investment
# category suppression is applied on top in effect().
_CASH_SIGN: dict[TransactionType, int] = {
    TransactionType.INCOME: 1,
    TransactionType.DIVIDEND: 1,
    TransactionType.STOCK_DIVIDEND: 1,
    TransactionType.ETF_DIVIDEND: 1,
    TransactionType.INTEREST: 1,
    TransactionType.DEPOSIT: 1,
    TransactionType.TRANSFER_IN: 1,
    TransactionType.EXPENSE: -1,
    TransactionType.WITHDRAWAL: -1,
    TransactionType.TRANSFER_OUT: -1,
    TransactionType.FEE: -1,
    **{t: -1 for t in BUY_TYPES},
    **{t: 1 for t in SELL_TYPES},
    **{t: 0 for t in STAKE_TYPES},
}

_FORWARD_ACTION = {
    **{t: HoldingsAction.ACQUIRE for t in BUY_TYPES},
    **{t: HoldingsAction.DISPOSE for t in SELL_TYPES},
}

_INVERSE_ACTION = {
    HoldingsAction.NONE: HoldingsAction.NONE,
    HoldingsAction.ACQUIRE: HoldingsAction.UNDO_ACQUIRE,
    HoldingsAction.DISPOSE: HoldingsAction.UNDO_DISPOSE,
}


def parse_type(transaction_type: str | TransactionType | None) -> TransactionType | None:
    """Return the TransactionType for a raw value, or None if unrecognized."""
    if transaction_type is None:
        return None
    if isinstance(transaction_type, TransactionType):
        return transaction_type
    try:
        return TransactionType(str(transaction_type).strip().lower())
    except ValueError:
        return None


def is_investment_category(category: str | None) -> bool:
    return category == settings.INVESTMENT_CATEGORY


def is_buy(transaction_type) -> bool:
    return parse_type(transaction_type) in BUY_TYPES


def is_sell(transaction_type) -> bool:
    return parse_type(transaction_type) in SELL_TYPES


def is_trading(transaction_type) -> bool:
    return parse_type(transaction_type) in TRADING_TYPES


def asset_type_for(transaction_type) -> str:
    """Asset type recorded on a holding created by this transaction type."""
    parsed = parse_type(transaction_type)
    if parsed is None:
        return "other"
    for prefix in ("stock", "etf", "crypto", "option", "bond"):
        if parsed.value.startswith(prefix):
            return prefix
    return "other"


def effect(
    transaction_type: str | TransactionType | None,
    account_category: str | None,
    amount: Decimal,
    direction: Direction = Direction.FORWARD,
) -> LedgerEffect:
    """Compute the signed effect of a transaction.

    Unknown types yield :data:`NO_EFFECT`. Trading types on an investment
    category account carry no balance delta; their holdings action still
    applies.

    Args:
        transaction_type: Raw or parsed transaction type.
        account_category: Category of the account the transaction posts to.
        amount: Unsigned transaction amount.
        direction: FORWARD when applying, REVERSE when undoing.

    Raises:
        ValueError: If ``amount`` is negative.
    """
    amount = Decimal(str(amount))
    if amount < 0:
        raise ValueError(f"Transaction amount must be non-negative, got {amount}")

    parsed = parse_type(transaction_type)
    if parsed is None:
        return NO_EFFECT

    sign = _CASH_SIGN[parsed]
    if parsed in TRADING_TYPES and is_investment_category(account_category):
        sign = 0

    balance_delta = amount * sign if sign else ZERO
    action = _FORWARD_ACTION.get(parsed, HoldingsAction.NONE)

    if direction is Direction.REVERSE:
        return LedgerEffect(-balance_delta if balance_delta else ZERO, _INVERSE_ACTION[action])
    return LedgerEffect(balance_delta, action)
