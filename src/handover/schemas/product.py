"""Pydantic schemas for product endpoints."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models import ProductKind


class ProductCreate(BaseModel):
    """Request body for creating a product."""

    name: str = Field(..., min_length=1, max_length=200)
    price: int = Field(..., ge=0)
    class_id: int = Field(..., ge=1)
    kind: ProductKind = ProductKind.BOOK
    payment_phone_number: Optional[str] = Field(None, max_length=32)
    accepts_vodafone_cash: bool = True
    accepts_instapay: bool = True


class ProductRead(BaseModel):
    product_id: UUID
    owner_id: UUID
    name: str
    price: int
    class_id: int
    kind: ProductKind
    payment_phone_number: Optional[str]
    accepts_vodafone_cash: bool
    accepts_instapay: bool
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DashboardOrder(BaseModel):
    order_id: UUID
    student_id: UUID
    student_name: str
    status: str
    redemption_code: Optional[str] = None
    activation_phone: Optional[str] = None
    created_at: datetime


class PendingConfirmationOrder(DashboardOrder):
    evidence_url: Optional[str] = None
    evidence_key: Optional[str] = None


class UnpaidStudent(BaseModel):
    student_id: UUID
    name: str
    seat_id: str
    status: str


class ProductStats(BaseModel):
    """Operator dashboard for one product."""

    product: ProductRead
    total_sales: int
    pending_pickup: int
    pending_confirmation_count: int
    delivered: int
    unpaid_students: int
    pending_orders: List[DashboardOrder]
    pending_confirmation_orders: List[PendingConfirmationOrder]
    paid_orders: List[DashboardOrder]
    unpaid_students_list: List[UnpaidStudent]
