"""Pydantic schemas for redemption workflows."""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class RedemptionRequest(BaseModel):
    """A scanned or typed redemption code."""

    code: str = Field(..., min_length=1, max_length=128)
    product_ids: Optional[List[UUID]] = Field(
        None,
        description="Products being handed over in this session; codes for other products are rejected.",
    )


class RedemptionResponse(BaseModel):
    success: bool
    outcome: str
    message: str
    order_id: Optional[UUID] = None
    student_name: Optional[str] = None
    product_name: Optional[str] = None
