"""
Transaction database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Numeric, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from tally.database import Base


class Transaction(Base):
    """A single expense, always in exactly one currency."""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)  # Always positive
    currency = Column(String(3), nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    category_name = Column(String(100), nullable=True)  # Denormalized for reports
    occurred_at = Column(DateTime, nullable=False)  # UTC
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    category = relationship("Category", back_populates="transactions")

    # Indexes for report queries
    __table_args__ = (
        Index("idx_transaction_owner_occurred", "owner_id", "occurred_at"),
        Index("idx_transaction_owner_category", "owner_id", "category_id"),
    )
