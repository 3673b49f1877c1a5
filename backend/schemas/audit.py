"""Pydantic schemas for reconciliation audits and repairs."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class AccountBalanceAuditResponse(BaseModel):
    account_id: str
    account_name: str
    current_balance: Decimal
    calculated_balance: Decimal
    holdings_value: Decimal
    total_value: Decimal
    difference: Decimal
    transaction_count: int
    has_discrepancy: bool

    model_config = ConfigDict(from_attributes=True)


class OrphanedTransactionResponse(BaseModel):
    id: str
    description: str | None = None
    amount: Decimal
    transaction_date: date
    account_id: str | None = None
    reason: str

    model_config = ConfigDict(from_attributes=True)


class HoldingAuditResponse(BaseModel):
    account_id: str
    symbol: str
    stored_quantity: Decimal
    replayed_quantity: Decimal
    stored_cost_basis: Decimal
    replayed_cost_basis: Decimal
    lot_cost_basis: Decimal
    has_discrepancy: bool

    model_config = ConfigDict(from_attributes=True)


class DataAuditReportResponse(BaseModel):
    """Full audit of a user's accounts."""

    account_audits: list[AccountBalanceAuditResponse]
    orphaned_transactions: list[OrphanedTransactionResponse]
    holding_audits: list[HoldingAuditResponse]
    total_discrepancies: int
    accounts_with_issues: int

    model_config = ConfigDict(from_attributes=True)


class AccountAuditResponse(BaseModel):
    """Balance and holdings audit of a single account."""

    balance: AccountBalanceAuditResponse
    holdings: list[HoldingAuditResponse]


class RepairResponse(BaseModel):
    success: bool
    error: str | None = None
    new_balance: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class BulkRepairResponse(BaseModel):
    updated_count: int
    failed_count: int
    errors: list[dict]

    model_config = ConfigDict(from_attributes=True)


class RebuildResponse(BaseModel):
    success: bool
    holdings_rebuilt: int
    transactions_replayed: int
    errors: list[str]

    model_config = ConfigDict(from_attributes=True)
