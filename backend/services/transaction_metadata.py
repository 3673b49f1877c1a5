"""Resolve a transaction's trade details into a single tagged variant.

Trade details (ticker, quantity, price, ...) normally live in the
``transaction_metadata`` JSON block. Older rows carry them in the legacy
``ticker``/``quantity``/``price`` columns instead. Callers resolve once with
:func:`resolve_metadata` and match on the returned type rather than probing
both places at every read site.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Union

from services.ledger_rules import TRADING_TYPES, TransactionType, parse_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TradeMetadata:
    """Trade details read from the JSON metadata block."""

    ticker: str | None
    quantity: Decimal | None
    price: Decimal | None
    strike_price: Decimal | None = None
    expiration_date: date | None = None
    notes: str | None = None


@dataclass(frozen=True)
class LegacyColumns:
    """Trade details read from the pre-metadata columns."""

    ticker: str | None
    quantity: Decimal | None
    price: Decimal | None


@dataclass(frozen=True)
class MissingMetadata:
    """No trade details anywhere on the row."""

    ticker: None = None
    quantity: None = None
    price: None = None


ResolvedMetadata = Union[TradeMetadata, LegacyColumns, MissingMetadata]

# Types that cannot be applied to holdings without ticker/quantity/price
_TYPES_REQUIRING_METADATA = TRADING_TYPES | frozenset({
    TransactionType.STOCK_DIVIDEND,
    TransactionType.ETF_DIVIDEND,
})


def _to_decimal(value) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _to_ticker(value) -> str | None:
    if not value:
        return None
    return str(value).strip().upper() or None


def _to_date(value) -> date | None:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def requires_metadata(transaction_type) -> bool:
    """Whether a transaction of this type needs ticker/quantity/price."""
    return parse_type(transaction_type) in _TYPES_REQUIRING_METADATA


def resolve_metadata(transaction) -> ResolvedMetadata:
    """Resolve trade details for a transaction.

    The JSON block wins when it holds any of ticker/quantity/price; the
    legacy columns are used otherwise. Tickers are upper-cased and numeric
    values converted to Decimal.
    """
    metadata = transaction.transaction_metadata or {}

    if any(metadata.get(k) not in (None, "") for k in ("ticker", "quantity", "price")):
        return TradeMetadata(
            ticker=_to_ticker(metadata.get("ticker")),
            quantity=_to_decimal(metadata.get("quantity")),
            price=_to_decimal(metadata.get("price")),
            strike_price=_to_decimal(
                metadata.get("strike_price", metadata.get("strikePrice"))
            ),
            expiration_date=_to_date(
                metadata.get("expiration_date", metadata.get("expirationDate"))
            ),
            notes=metadata.get("notes"),
        )

    if transaction.ticker or transaction.quantity is not None or transaction.price is not None:
        logger.warning(
            "Transaction %s carries trade data in legacy columns; "
            "migrate it to transaction_metadata",
            transaction.id,
        )
        return LegacyColumns(
            ticker=_to_ticker(transaction.ticker),
            quantity=_to_decimal(transaction.quantity),
            price=_to_decimal(transaction.price),
        )

    if requires_metadata(transaction.transaction_type):
        logger.warning(
            "Transaction %s (%s) on %s is missing ticker/quantity/price",
            transaction.id,
            transaction.transaction_type,
            transaction.transaction_date,
        )
    return MissingMetadata()


def metadata_quality_report(transactions) -> dict:
    """Summarize where trade details come from across a set of transactions.

    Returns:
        Dict with counts per variant, the number of complete rows and the
        ids of rows whose type requires metadata but has none.
    """
    counts = {"metadata": 0, "legacy_columns": 0, "missing": 0}
    complete = 0
    incomplete_ids: list[str] = []

    for txn in transactions:
        resolved = resolve_metadata(txn)
        if isinstance(resolved, TradeMetadata):
            counts["metadata"] += 1
        elif isinstance(resolved, LegacyColumns):
            counts["legacy_columns"] += 1
        else:
            counts["missing"] += 1
            if requires_metadata(txn.transaction_type):
                incomplete_ids.append(txn.id)

        if resolved.ticker and resolved.quantity is not None:
            complete += 1

    total = len(transactions)
    return {
        "total": total,
        **counts,
        "complete": complete,
        "quality_percent": round(complete / total * 100, 1) if total else 0.0,
        "incomplete_transaction_ids": incomplete_ids,
    }
