"""Pydantic schemas for statement imports and parsed trades."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class StatementImportResponse(BaseModel):
    """Schema for StatementImport API response."""

    id: str
    filename: str
    file_type: str
    file_size: int
    broker_name: str | None = None
    status: str
    uploaded_at: datetime
    processed_at: datetime | None = None
    validation_summary: dict = {}
    error_message: str | None = None
    trade_count: int

    model_config = ConfigDict(from_attributes=True)


class ParsedTradeResponse(BaseModel):
    """Schema for ParsedTrade API response."""

    id: str
    import_id: str
    symbol: str
    action: str
    shares: Decimal | None = None
    price: Decimal | None = None
    amount: Decimal | None = None
    trade_date: date | None = None
    account_name: str | None = None
    confidence_score: Decimal
    validation_status: str
    validation_errors: list[dict] = []
    raw_text_snippet: str | None = None
    is_selected: bool
    transaction_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ParsedTradeUpdate(BaseModel):
    is_selected: bool
