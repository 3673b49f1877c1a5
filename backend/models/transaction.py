"""Transaction model - one immutable entry of the ledger."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Numeric,
    String,
)

from database import Base
from models.utils import generate_uuid, utc_now


class Transaction(Base):
    """A financial event in the append-only ledger.

    ``amount`` is always a non-negative magnitude; the sign comes from
    ``transaction_type``. Edits are modelled as delete + recreate, so the
    only column that changes after insert is ``ledger_applied``, which
    records whether the transaction's effect is currently reflected in
    balances and holdings.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_transaction_amount_non_negative"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    # No FK: the auditor must be able to see rows whose account was removed
    account_id = Column(String(36), nullable=True, index=True)
    transaction_type = Column(String, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    transaction_date = Column(Date, nullable=False, index=True)
    description = Column(String, nullable=True)
    transaction_metadata = Column(JSON, nullable=True)

    # Legacy columns predating transaction_metadata; read-only fallbacks
    ticker = Column(String, nullable=True)
    quantity = Column(Numeric(18, 8), nullable=True)
    price = Column(Numeric(18, 6), nullable=True)

    ledger_applied = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utc_now)
