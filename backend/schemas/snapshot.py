"""Pydantic schemas for portfolio snapshots."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class SnapshotCreate(BaseModel):
    """Date to snapshot; defaults to today."""

    snapshot_date: date | None = None


class BackfillRequest(BaseModel):
    start_date: date
    end_date: date | None = None


class PortfolioSnapshotResponse(BaseModel):
    """Schema for PortfolioSnapshot API response."""

    id: str
    user_id: str
    snapshot_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    net_worth: Decimal
    asset_class_breakdown: dict[str, float]
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class SnapshotResultResponse(BaseModel):
    success: bool
    snapshot_date: date | None = None
    total_assets: Decimal | None = None
    total_liabilities: Decimal | None = None
    net_worth: Decimal | None = None
    asset_class_breakdown: dict[str, Decimal] | None = None
    error: str | None = None


class BackfillResponse(BaseModel):
    success: bool
    snapshots_created: int
    dates_failed: list[date]
    error: str | None = None

    model_config = ConfigDict(from_attributes=True)
