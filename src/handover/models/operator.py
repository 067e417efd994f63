"""Operator model."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..core.database import Base


class Operator(Base):
    """Principal that owns products and reviews or redeems their orders."""

    __tablename__ = "operators"
    __table_args__ = (
        UniqueConstraint("username", name="operators_username_unique"),
    )

    operator_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    username = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    products = relationship("Product", back_populates="owner")
