"""Account model - a cash-bearing or liability container."""

from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Account(Base):
    """A user's account.

    ``current_balance`` is materialized state derived from the transaction
    log. It is written only by the balance applier/reverser and by the
    reconciliation repair path.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False, default="asset")  # "asset" | "liability"
    category = Column(String, nullable=False)  # e.g., "Investment Accounts", "Checking"
    current_balance = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    asset_class_id = Column(
        String(36), ForeignKey("asset_classes.id"), nullable=True
    )
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    asset_class = relationship("AssetClass", back_populates="accounts")
    holdings = relationship("Holding", back_populates="account")
