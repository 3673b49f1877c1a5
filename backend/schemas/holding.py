"""Pydantic schemas for holdings and their lots."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class HoldingResponse(BaseModel):
    """Schema for Holding API response."""

    id: str
    account_id: str
    symbol: str
    name: str | None = None
    asset_type: str
    quantity: Decimal
    cost_basis: Decimal
    current_price: Decimal
    current_value: Decimal
    import_source: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # Computed from the holding's open lots
    lot_count: int | None = None
    lot_cost_basis: Decimal | None = None

    model_config = ConfigDict(from_attributes=True)


class HoldingLotResponse(BaseModel):
    """Schema for HoldingLot API response."""

    id: str
    account_id: str
    holding_id: str
    transaction_id: str | None = None
    symbol: str
    purchase_date: date
    quantity: Decimal
    quantity_remaining: Decimal
    cost_per_share: Decimal
    total_cost: Decimal
    lot_status: str
    source: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)
