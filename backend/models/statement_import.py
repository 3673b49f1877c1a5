"""StatementImport model - one uploaded broker statement and its parse status."""

from sqlalchemy import JSON, BigInteger, CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class StatementImport(Base):
    """An uploaded statement moving through pending -> processing -> completed|failed."""

    __tablename__ = "statement_imports"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_statement_import_status",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    filename = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_size = Column(BigInteger, nullable=False, default=0)
    broker_name = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")
    uploaded_at = Column(DateTime, default=utc_now, nullable=False)
    processed_at = Column(DateTime, nullable=True)
    validation_summary = Column(JSON, nullable=False, default=dict)
    error_message = Column(Text, nullable=True)
    trade_count = Column(Integer, nullable=False, default=0)

    # Relationships
    parsed_trades = relationship(
        "ParsedTrade",
        back_populates="statement_import",
        cascade="all, delete-orphan",
        order_by="ParsedTrade.created_at",
    )
