"""Order model and status vocabulary."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SAEnum, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..core.database import Base


class OrderStatus(str, enum.Enum):
    """Statuses stored on an order row."""

    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    PAID = "PAID"
    DECLINED = "DECLINED"
    DELIVERED = "DELIVERED"


class TargetStatus(str, enum.Enum):
    """Statuses accepted at administrative boundaries.

    ``UNPAID`` has no stored counterpart: it means the order row is absent.
    """

    UNPAID = "UNPAID"
    PENDING_CONFIRMATION = "PENDING_CONFIRMATION"
    PAID = "PAID"
    DECLINED = "DECLINED"
    DELIVERED = "DELIVERED"

    @property
    def stored(self) -> OrderStatus | None:
        if self is TargetStatus.UNPAID:
            return None
        return OrderStatus(self.value)

    @property
    def requires_code(self) -> bool:
        return self in (TargetStatus.PAID, TargetStatus.DELIVERED)


class Order(Base):
    """Ties one student to one product's payment and delivery state."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("student_id", "product_id", name="orders_student_product_unique"),
        UniqueConstraint("redemption_code", name="orders_redemption_code_unique"),
    )

    order_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.student_id", ondelete="RESTRICT"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id", ondelete="CASCADE"), nullable=False)
    status = Column(SAEnum(OrderStatus, name="order_status"), nullable=False)
    evidence_ref = Column(String)
    activation_phone = Column(String)
    redemption_code = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    delivered_at = Column(DateTime)
    delivered_by = Column(UUID(as_uuid=True))

    student = relationship("Student", back_populates="orders")
    product = relationship("Product", back_populates="orders")
