"""Market data protocol definitions.

Current prices are supplied to the ledger, never computed by it. A source
returning ``None`` (or raising :class:`MarketDataError`) makes the caller
fall back to the price recorded on the transaction.
"""

from decimal import Decimal
from typing import Protocol


class PriceSource(Protocol):
    """Protocol for current-price providers."""

    @property
    def provider_name(self) -> str:
        """Return the provider name (e.g., 'yahoo')."""
        ...

    def get_current_price(self, symbol: str) -> Decimal | None:
        """Return the latest known price for ``symbol``, or None if unknown."""
        ...


class StaticPriceSource:
    """Dict-backed price source.

    Used as the default when no live feed is wired in (every lookup misses
    unless prices were supplied) and by tests.
    """

    def __init__(self, prices: dict[str, Decimal] | None = None):
        self._prices = {k.upper(): Decimal(str(v)) for k, v in (prices or {}).items()}

    @property
    def provider_name(self) -> str:
        return "static"

    def set_price(self, symbol: str, price: Decimal) -> None:
        self._prices[symbol.upper()] = Decimal(str(price))

    def get_current_price(self, symbol: str) -> Decimal | None:
        return self._prices.get(symbol.upper())
