"""Endpoints for redeeming order codes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas import RedemptionRequest, RedemptionResponse
from ...services import redemption_service
from ...services.exceptions import OrderRuleViolation
from ..deps import get_current_operator

router = APIRouter(prefix="/redemptions", tags=["redemptions"])


@router.post(
    "",
    response_model=RedemptionResponse,
    summary="Redeem an order code",
    responses={
        200: {
            "description": "Redemption outcome; check ``success``",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "outcome": "DELIVERED",
                        "message": "Order delivered.",
                        "order_id": "88888888-8888-8888-8888-888888888888",
                        "student_name": "Bianca Liu",
                        "product_name": "Anatomy Notes Vol. 2"
                    }
                }
            },
        },
        401: {"description": "Operator identity missing"},
    },
)
def redeem_code(
    payload: RedemptionRequest,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> RedemptionResponse:
    """Hand over the order behind a scanned or typed code.

    Example request body::

        {
            "code": "0b7c6c1e-8f0d-4f43-a0d1-2f5a9e0c1d11",
            "product_ids": ["11111111-1111-1111-1111-111111111111"]
        }
    """

    if payload.product_ids is not None and not payload.product_ids:
        raise OrderRuleViolation.validation("Select at least one product to redeem for.")

    try:
        result = redemption_service.redeem(
            db,
            code=payload.code,
            product_ids=set(payload.product_ids) if payload.product_ids is not None else None,
            operator_id=operator_id,
        )
        db.commit()
    except OrderRuleViolation:
        db.rollback()
        raise

    return RedemptionResponse(
        success=result.success,
        outcome=result.outcome.value,
        message=result.message,
        order_id=result.order_id,
        student_name=result.student_name,
        product_name=result.product_name,
    )
