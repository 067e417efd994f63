"""Product model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..core.database import Base


class ProductKind(str, enum.Enum):
    """Kind of goods handed over for a product."""

    BOOK = "BOOK"
    COURSE = "COURSE"


class Product(Base):
    """A paid item offered to one class and managed by one operator."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="products_price_positive"),
    )

    product_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("operators.operator_id", ondelete="RESTRICT"), nullable=False)
    name = Column(String, nullable=False)
    price = Column(Integer, nullable=False)
    class_id = Column(Integer, nullable=False, index=True)
    kind = Column(SAEnum(ProductKind, name="product_kind"), nullable=False, default=ProductKind.BOOK)
    payment_phone_number = Column(String)
    accepts_vodafone_cash = Column(Boolean, nullable=False, default=True)
    accepts_instapay = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    owner = relationship("Operator", back_populates="products")
    orders = relationship("Order", back_populates="product")
