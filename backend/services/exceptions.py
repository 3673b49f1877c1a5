"""Typed exception hierarchy for ledger operations.

Service entry points that cross the apply/reverse/audit/snapshot boundary
return result objects; these exceptions are raised inside the services
and by the thin orchestration layer the API calls.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""

    pass


class NotFoundError(LedgerError):
    """A referenced record does not exist. Nothing was written."""

    def __init__(self, message: str, entity_id: str | None = None):
        self.entity_id = entity_id
        super().__init__(message)


class AccountNotFoundError(NotFoundError):
    pass


class TransactionNotFoundError(NotFoundError):
    pass


class ImportNotFoundError(NotFoundError):
    pass


class InsufficientLotsError(LedgerError):
    """A sell asks for more units than the open lots hold."""

    def __init__(self, symbol: str, requested, available):
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient shares of {symbol} to sell: requested {requested}, "
            f"open lots hold {available}"
        )


class TradeDataError(LedgerError):
    """A trading transaction has unusable quantity or price."""

    pass


class ConsistencyError(LedgerError):
    """Stored state disagrees with the replayed ledger."""

    pass


class LedgerOperationError(LedgerError):
    """An apply/reverse failed; carries the LedgerResult for the caller."""

    def __init__(self, result):
        self.result = result
        super().__init__(result.error or "Ledger operation failed")


class ImportStateError(LedgerError):
    """A statement import is not in a state that allows the requested step."""

    pass
