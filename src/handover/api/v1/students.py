"""Student directory endpoints."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...models import TargetStatus
from ...schemas import CatalogEntry, StudentCatalog, StudentSummary
from ...services import student_service

router = APIRouter(prefix="/students", tags=["students"])


@router.get("/search", response_model=List[StudentSummary], summary="Search students by name or seat id")
def search_students(
    *,
    q: str = Query(..., description="At least three characters of a name or seat id"),
    class_id: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
) -> List[StudentSummary]:
    return list(student_service.search_students(db, query=q, class_id=class_id))


@router.get("/{student_id}", response_model=StudentSummary, summary="Fetch a student")
def get_student(student_id: UUID, db: Session = Depends(get_db)) -> StudentSummary:
    return student_service.get_student(db, student_id)


@router.get("/{student_id}/products", response_model=StudentCatalog, summary="Products offered to a student")
def get_student_products(student_id: UUID, db: Session = Depends(get_db)) -> StudentCatalog:
    student, entries = student_service.student_catalog(db, student_id=student_id)
    products = [
        CatalogEntry(
            product_id=product.product_id,
            name=product.name,
            price=product.price,
            kind=product.kind.value,
            owner_name=product.owner.name if product.owner else None,
            payment_phone_number=product.payment_phone_number,
            accepts_vodafone_cash=product.accepts_vodafone_cash,
            accepts_instapay=product.accepts_instapay,
            status=TargetStatus(order.status.value) if order else TargetStatus.UNPAID,
            redemption_code=order.redemption_code if order else None,
        )
        for product, order in entries
    ]
    return StudentCatalog(student=StudentSummary.model_validate(student), products=products)
