"""External collaborator integrations.

This package contains:
- Price source protocol: current prices supplied to the ledger
- Statement storage: raw uploaded statement files
- Exceptions: typed errors for external collaborator failures
"""

from integrations.exceptions import (
    ExternalServiceError,
    MarketDataError,
    StorageError,
    StorageNotFoundError,
)
from integrations.market_data_protocol import PriceSource, StaticPriceSource
from integrations.storage_protocol import LocalStatementStorage, StatementStorage

__all__ = [
    "ExternalServiceError",
    "LocalStatementStorage",
    "MarketDataError",
    "PriceSource",
    "StatementStorage",
    "StaticPriceSource",
    "StorageError",
    "StorageNotFoundError",
]
