"""Pydantic schemas for order workflows."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import TargetStatus


class OrderRead(BaseModel):
    """An order as shown to students and operators.

    ``status`` is ``UNPAID`` and the other fields are empty when the student
    has no order for the product.
    """

    order_id: Optional[UUID] = None
    student_id: UUID
    product_id: UUID
    status: TargetStatus
    evidence_url: Optional[str] = None
    activation_phone: Optional[str] = None
    redemption_code: Optional[str] = None
    created_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class StatusUpdate(BaseModel):
    """Administrative override for one student."""

    student_id: UUID
    product_id: UUID
    status: TargetStatus


class BatchStatusUpdate(BaseModel):
    """Administrative override applied to many students at once."""

    student_ids: List[UUID] = Field(..., alias="studentIds")
    product_id: UUID = Field(..., alias="productId")
    status: TargetStatus

    model_config = ConfigDict(populate_by_name=True)
