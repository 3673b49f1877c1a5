"""Holding model - a position in one symbol within one account."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Holding(Base):
    """A position held in an account.

    ``cost_basis`` is the aggregate of the open lots; a holding that reaches
    zero quantity is deleted rather than kept at zero.
    """

    __tablename__ = "holdings"
    __table_args__ = (
        UniqueConstraint("account_id", "symbol", name="uix_holding_account_symbol"),
        CheckConstraint("quantity >= 0", name="ck_holding_quantity_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    symbol = Column(String, nullable=False)
    name = Column(String, nullable=True)
    asset_type = Column(String, nullable=False, default="other")  # stock/etf/crypto/option/bond/cash/other
    quantity = Column(Numeric(18, 8), nullable=False, default=Decimal("0"))
    cost_basis = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    current_price = Column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    current_value = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    import_source = Column(String, nullable=False, default="manual")  # "manual" / "system_generated" / "replay"
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    # Relationships
    account = relationship("Account", back_populates="holdings")
    lots = relationship(
        "HoldingLot",
        back_populates="holding",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
