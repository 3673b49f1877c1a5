"""Pydantic schemas for ledger transactions."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TransactionMetadataIn(BaseModel):
    """Trade details stored in ``transaction_metadata``."""

    ticker: str | None = None
    quantity: Decimal | None = None
    price: Decimal | None = None
    strike_price: Decimal | None = None
    expiration_date: date | None = None
    notes: str | None = None

    @field_validator("ticker")
    @classmethod
    def normalize_ticker(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().upper() or None

    def to_json(self) -> dict:
        """JSON-safe dict with unset fields dropped."""
        return self.model_dump(mode="json", exclude_none=True)


class TransactionCreate(BaseModel):
    """Schema for creating a transaction."""

    account_id: str | None = None
    transaction_type: str
    amount: Decimal = Field(ge=0)
    transaction_date: date
    description: str | None = None
    metadata: TransactionMetadataIn | None = None

    @field_validator("transaction_type")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("transaction_type must not be empty")
        return v


class TransactionResponse(BaseModel):
    """Schema for Transaction API response."""

    id: str
    user_id: str
    account_id: str | None
    transaction_type: str
    amount: Decimal
    transaction_date: date
    description: str | None = None
    transaction_metadata: dict | None = None
    ledger_applied: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionMutationResponse(BaseModel):
    """A created or replaced transaction plus the balance change it caused."""

    transaction: TransactionResponse
    balance_delta: Decimal


class PromoteTradesRequest(BaseModel):
    """Target account for promoting an import's selected trades."""

    account_id: str


class PromotionFailure(BaseModel):
    trade_id: str
    error: str


class PromotionResponse(BaseModel):
    """Result of promoting parsed trades into the ledger."""

    created_transaction_ids: list[str] = []
    failures: list[PromotionFailure] = []
    skipped_count: int = 0
