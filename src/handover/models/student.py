"""Student reference model."""

import uuid

from sqlalchemy import Column, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ..core.database import Base


class Student(Base):
    """A student eligible to buy products offered to their class."""

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("seat_id", name="students_seat_id_unique"),
    )

    student_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    seat_id = Column(String, nullable=False)
    class_id = Column(Integer, nullable=False, index=True)

    orders = relationship("Order", back_populates="student")
