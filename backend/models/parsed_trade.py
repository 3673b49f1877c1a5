"""ParsedTrade model - a candidate transaction extracted from a statement."""

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class ParsedTrade(Base):
    """An unconfirmed trade awaiting user review.

    Candidates are kept regardless of validation status; the user decides
    which selected rows are promoted into the ledger.
    """

    __tablename__ = "parsed_trades"
    __table_args__ = (
        CheckConstraint(
            "confidence_score >= 0 AND confidence_score <= 1",
            name="ck_parsed_trade_confidence_range",
        ),
        CheckConstraint(
            "validation_status IN ('valid', 'warning', 'error', 'pending')",
            name="ck_parsed_trade_validation_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    import_id = Column(
        String(36), ForeignKey("statement_imports.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(String(36), nullable=False, index=True)
    symbol = Column(String, nullable=False, default="")
    action = Column(String, nullable=False, default="")
    shares = Column(Numeric(18, 8), nullable=True)
    price = Column(Numeric(18, 6), nullable=True)
    amount = Column(Numeric(18, 4), nullable=True)
    trade_date = Column(Date, nullable=True)
    account_name = Column(String, nullable=True)
    confidence_score = Column(Numeric(3, 2), nullable=False, default=0.5)
    validation_status = Column(String, nullable=False, default="pending")
    validation_errors = Column(JSON, nullable=False, default=list)
    raw_text_snippet = Column(Text, nullable=True)
    is_selected = Column(Boolean, nullable=False, default=True)
    transaction_id = Column(String(36), nullable=True)  # set once promoted into the ledger
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    statement_import = relationship("StatementImport", back_populates="parsed_trades")
