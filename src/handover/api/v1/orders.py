"""Order lifecycle endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...core.database import get_db
from ...models import Order, TargetStatus
from ...schemas import ActionResult, BatchStatusUpdate, CountResult, OrderRead, StatusUpdate
from ...services import batch_service, order_service
from ...services.evidence_service import ObjectStorage, resolve_evidence_url, store_evidence
from ...services.exceptions import OrderRuleViolation
from ..deps import get_app_settings, get_current_operator, get_storage

router = APIRouter(tags=["orders"])


def _order_read(
    order: Optional[Order],
    *,
    student_id: UUID,
    product_id: UUID,
    evidence_url: Optional[str] = None,
) -> OrderRead:
    if order is None:
        return OrderRead(student_id=student_id, product_id=product_id, status=TargetStatus.UNPAID)
    return OrderRead(
        order_id=order.order_id,
        student_id=order.student_id,
        product_id=order.product_id,
        status=TargetStatus(order.status.value),
        evidence_url=evidence_url,
        activation_phone=order.activation_phone,
        redemption_code=order.redemption_code,
        created_at=order.created_at,
        delivered_at=order.delivered_at,
    )


@router.post(
    "/orders/evidence",
    response_model=OrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Submit payment evidence",
    responses={
        404: {"description": "Student or product not found"},
        409: {"description": "Order already paid"},
        422: {"description": "Missing screenshot"},
        502: {"description": "Evidence upload failed"},
    },
)
def submit_evidence(
    student_id: UUID = Form(...),
    product_id: UUID = Form(...),
    activation_phone: Optional[str] = Form(None),
    screenshot: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> OrderRead:
    """Upload a payment screenshot and queue the order for confirmation."""

    data = screenshot.file.read()
    key = store_evidence(storage, data, screenshot.content_type, prefix=settings.evidence_key_prefix)
    try:
        order = order_service.submit_evidence(
            db,
            student_id=student_id,
            product_id=product_id,
            evidence_ref=key,
            activation_phone=activation_phone,
            allow_after_payment=settings.allow_resubmission_after_payment,
        )
        db.commit()
        return _order_read(
            order,
            student_id=student_id,
            product_id=product_id,
            evidence_url=resolve_evidence_url(storage, key, settings.evidence_url_ttl_seconds),
        )
    except OrderRuleViolation:
        db.rollback()
        raise


@router.get("/orders/lookup", response_model=OrderRead, summary="A student's order for a product")
def get_student_order(
    *,
    student_id: UUID = Query(...),
    product_id: UUID = Query(...),
    db: Session = Depends(get_db),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> OrderRead:
    order, evidence_url = order_service.get_student_order(
        db,
        storage,
        student_id=student_id,
        product_id=product_id,
        ttl_seconds=settings.evidence_url_ttl_seconds,
    )
    return _order_read(order, student_id=student_id, product_id=product_id, evidence_url=evidence_url)


@router.post("/orders/{order_id}/confirm", response_model=ActionResult, summary="Confirm a payment")
def confirm_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ActionResult:
    try:
        order_service.confirm(db, order_id=order_id, operator_id=operator_id)
        db.commit()
        return ActionResult(success=True)
    except OrderRuleViolation:
        db.rollback()
        raise


@router.post("/orders/{order_id}/decline", response_model=ActionResult, summary="Decline a payment")
def decline_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ActionResult:
    try:
        order_service.decline(db, order_id=order_id, operator_id=operator_id)
        db.commit()
        return ActionResult(success=True)
    except OrderRuleViolation:
        db.rollback()
        raise


@router.put("/orders/status", response_model=ActionResult, summary="Override one student's status")
def set_order_status(
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ActionResult:
    """Set a student's status directly; ``UNPAID`` deletes the order.

    Example request body::

        {
            "student_id": "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb",
            "product_id": "11111111-1111-1111-1111-111111111111",
            "status": "PAID"
        }
    """

    try:
        order_service.set_status(
            db,
            student_id=payload.student_id,
            product_id=payload.product_id,
            status=payload.status,
            operator_id=operator_id,
        )
        db.commit()
        return ActionResult(success=True)
    except OrderRuleViolation:
        db.rollback()
        raise


@router.post(
    "/orders/batch-status",
    response_model=ActionResult,
    summary="Override many students' status at once",
    responses={
        200: {
            "description": "Batch applied",
            "content": {"application/json": {"example": {"success": True}}},
        },
        502: {"description": "Batch rolled back"},
    },
)
def batch_set_status(
    payload: BatchStatusUpdate,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> ActionResult:
    """Apply one status to every listed student, all or nothing.

    Example request body::

        {
            "studentIds": ["bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"],
            "productId": "11111111-1111-1111-1111-111111111111",
            "status": "DELIVERED"
        }
    """

    try:
        batch_service.apply_batch_status(
            db,
            student_ids=payload.student_ids,
            product_id=payload.product_id,
            status=payload.status,
            operator_id=operator_id,
        )
        db.commit()
        return ActionResult(success=True)
    except OrderRuleViolation:
        db.rollback()
        raise


@router.post(
    "/products/{product_id}/confirm-pending",
    response_model=CountResult,
    summary="Confirm every pending payment of a product",
)
def confirm_all_pending(
    product_id: UUID,
    db: Session = Depends(get_db),
    operator_id: UUID = Depends(get_current_operator),
) -> CountResult:
    try:
        count = order_service.confirm_all_pending(db, product_id=product_id, operator_id=operator_id)
        db.commit()
        return CountResult(success=True, count=count)
    except OrderRuleViolation:
        db.rollback()
        raise
