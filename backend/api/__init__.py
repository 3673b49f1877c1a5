"""API route handlers."""
from . import audit, holdings, imports, snapshots, transactions

__all__ = ["audit", "holdings", "imports", "snapshots", "transactions"]
