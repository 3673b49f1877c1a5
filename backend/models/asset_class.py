"""AssetClass model - user-defined tag used for net worth breakdowns."""

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class AssetClass(Base):
    """A named asset class (e.g. "US Equities", "Cash") that accounts can be tagged with."""

    __tablename__ = "asset_classes"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uix_asset_class_user_name"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=True, index=True)  # NULL = system default
    name = Column(String, nullable=False)
    color = Column(String(7), nullable=False, default="#3B82F6")
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    accounts = relationship("Account", back_populates="asset_class")
