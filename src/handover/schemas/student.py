"""Pydantic schemas for the student directory."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from ..models import TargetStatus


class StudentSummary(BaseModel):
    """Lightweight projection of student details."""

    student_id: UUID
    name: str
    seat_id: str
    class_id: int

    model_config = ConfigDict(from_attributes=True)


class CatalogEntry(BaseModel):
    """A product offered to the student with their current order state."""

    product_id: UUID
    name: str
    price: int
    kind: str
    owner_name: Optional[str] = None
    payment_phone_number: Optional[str] = None
    accepts_vodafone_cash: bool
    accepts_instapay: bool
    status: TargetStatus
    redemption_code: Optional[str] = None


class StudentCatalog(BaseModel):
    student: StudentSummary
    products: List[CatalogEntry]
