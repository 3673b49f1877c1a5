"""SQLAlchemy ORM models."""

from .account import Account
from .asset_class import AssetClass
from .holding import Holding
from .holding_lot import HoldingLot
from .parsed_trade import ParsedTrade
from .portfolio_snapshot import PortfolioSnapshot
from .statement_import import StatementImport
from .transaction import Transaction
from .utils import generate_uuid

__all__ = ["Account", "AssetClass", "Holding", "HoldingLot", "ParsedTrade", "PortfolioSnapshot", "StatementImport", "Transaction", "generate_uuid"]
