"""HoldingLot model - one FIFO acquisition batch underlying a holding."""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class HoldingLot(Base):
    """A lot representing an acquisition of a symbol in an account.

    Sum of ``quantity_remaining * cost_per_share`` over the open lots of a
    holding equals that holding's ``cost_basis``. ``transaction_id`` links a
    lot to the transaction that opened it so the lot can be removed when the
    transaction is reversed.
    """

    __tablename__ = "holding_lots"
    __table_args__ = (
        CheckConstraint("cost_per_share >= 0", name="ck_holding_lot_cost_non_negative"),
        CheckConstraint("quantity > 0", name="ck_holding_lot_quantity_positive"),
        CheckConstraint("quantity_remaining >= 0", name="ck_holding_lot_remaining_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    holding_id = Column(
        String(36), ForeignKey("holdings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transaction_id = Column(String(36), nullable=True, index=True)
    symbol = Column(String, nullable=False)
    purchase_date = Column(Date, nullable=False)
    quantity = Column(Numeric(18, 8), nullable=False)
    quantity_remaining = Column(Numeric(18, 8), nullable=False)
    cost_per_share = Column(Numeric(18, 6), nullable=False, default=Decimal("0"))
    total_cost = Column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    lot_status = Column(String, nullable=False, default="open", index=True)  # "open" | "closed"
    source = Column(String, nullable=False, default="transaction")  # "transaction" / "reversal" / "replay"
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    holding = relationship("Holding", back_populates="lots")
