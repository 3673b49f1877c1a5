"""PortfolioSnapshot model - one net worth materialization per user per day."""

from decimal import Decimal

from sqlalchemy import JSON, Column, Date, DateTime, Numeric, String, UniqueConstraint

from database import Base
from models.utils import generate_uuid, utc_now


class PortfolioSnapshot(Base):
    """Point-in-time totals for a user on a calendar date.

    The (user_id, snapshot_date) unique constraint is the upsert conflict
    key; the snapshot generator is the only writer.
    """

    __tablename__ = "portfolio_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "snapshot_date", name="uix_portfolio_snapshot_user_date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    snapshot_date = Column(Date, nullable=False, index=True)
    total_assets = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    total_liabilities = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    net_worth = Column(Numeric(18, 2), nullable=False, default=Decimal("0"))
    asset_class_breakdown = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
