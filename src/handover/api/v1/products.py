"""Product catalog and dashboard endpoints."""

from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...schemas import ActionResult, ProductCreate, ProductRead, ProductStats
from ...services import product_service
from ...services.evidence_service import ObjectStorage
from ...services.exceptions import OrderRuleViolation
from ..deps import get_app_settings, get_current_operator, get_storage

router = APIRouter(prefix="/products", tags=["products"])


@router.get("", response_model=List[ProductRead], summary="Products managed by the operator")
def list_products(
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> List[ProductRead]:
    return list(product_service.list_products(db, owner_id=operator_id))


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ProductRead:
    """Offer a new book or course to one class.

    Example request body::

        {
            "name": "Anatomy Notes Vol. 2",
            "price": 150,
            "class_id": 2,
            "kind": "BOOK",
            "payment_phone_number": "01000000000"
        }
    """

    product = product_service.create_product(db, owner_id=operator_id, **payload.model_dump())
    db.commit()
    db.refresh(product)
    return product


@router.get("/{product_id}", response_model=ProductRead, summary="Fetch a product")
def get_product(product_id: UUID, db: Session = Depends(get_db)) -> ProductRead:
    return product_service.get_product(db, product_id)


@router.delete("/{product_id}", response_model=ActionResult, summary="Delete a product and its orders")
def delete_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ActionResult:
    try:
        product_service.delete_product(db, product_id=product_id, operator_id=operator_id)
        db.commit()
        return ActionResult(success=True)
    except OrderRuleViolation:
        db.rollback()
        raise


@router.get("/{product_id}/stats", response_model=ProductStats, summary="Operator dashboard for a product")
def get_product_stats(
    product_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> ProductStats:
    stats = product_service.product_stats(
        db,
        storage,
        product_id=product_id,
        operator_id=operator_id,
        ttl_seconds=settings.evidence_url_ttl_seconds,
    )
    stats["product"] = ProductRead.model_validate(stats["product"])
    return ProductStats(**stats)
