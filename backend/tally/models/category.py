"""
Category database model.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.orm import relationship
from tally.database import Base


class Category(Base):
    """Owner-defined spending category."""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=True)  # Hex color
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    transactions = relationship("Transaction", back_populates="category")

    __table_args__ = (
        Index("idx_category_owner", "owner_id"),
    )
