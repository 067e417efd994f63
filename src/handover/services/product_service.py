"""Product catalog and per-product dashboard."""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, joinedload

from ..models import Order, OrderStatus, Product, ProductKind, Student
from .evidence_service import DEFAULT_URL_TTL_SECONDS, ObjectStorage, resolve_evidence_url
from .exceptions import OrderRuleViolation
from .order_service import ensure_product_access

logger = logging.getLogger(__name__)


def list_products(session: Session, *, owner_id: UUID) -> Sequence[Product]:
    """Products managed by one operator, by name."""

    stmt = select(Product).where(Product.owner_id == owner_id).order_by(Product.name.asc())
    return session.execute(stmt).scalars().all()


def get_product(session: Session, product_id: UUID) -> Product:
    stmt = select(Product).options(joinedload(Product.owner)).where(Product.product_id == product_id)
    product = session.execute(stmt).scalar_one_or_none()
    if product is None:
        raise OrderRuleViolation.not_found(f"Product {product_id} not found")
    return product


def create_product(
    session: Session,
    *,
    owner_id: UUID,
    name: str,
    price: int,
    class_id: int,
    kind: ProductKind = ProductKind.BOOK,
    payment_phone_number: Optional[str] = None,
    accepts_vodafone_cash: bool = True,
    accepts_instapay: bool = True,
) -> Product:
    product = Product(
        owner_id=owner_id,
        name=name,
        price=price,
        class_id=class_id,
        kind=kind,
        payment_phone_number=payment_phone_number,
        accepts_vodafone_cash=accepts_vodafone_cash,
        accepts_instapay=accepts_instapay,
        is_active=True,
    )
    session.add(product)
    session.flush()
    session.refresh(product)
    logger.info("product %s created by operator %s", product.product_id, owner_id)
    return product


def delete_product(session: Session, *, product_id: UUID, operator_id: UUID) -> None:
    """Remove a product together with all of its orders."""

    product = ensure_product_access(session, product_id, operator_id)
    session.execute(
        delete(Order).where(Order.product_id == product.product_id).execution_options(synchronize_session=False)
    )
    session.delete(product)
    session.flush()
    logger.info("product %s deleted by operator %s", product_id, operator_id)


def product_stats(
    session: Session,
    storage: ObjectStorage,
    *,
    product_id: UUID,
    operator_id: Optional[UUID] = None,
    ttl_seconds: int = DEFAULT_URL_TTL_SECONDS,
) -> dict:
    """Summarise a product's orders for the operator dashboard.

    Students of the product's class without a PAID, DELIVERED or pending
    order count as unpaid; those whose proof was declined are flagged so the
    operator can follow up.
    """

    product = ensure_product_access(session, product_id, operator_id)

    orders_stmt = (
        select(Order)
        .options(joinedload(Order.student))
        .where(Order.product_id == product.product_id)
        .order_by(Order.created_at.desc())
    )
    orders = session.execute(orders_stmt).scalars().all()

    paid = [o for o in orders if o.status in (OrderStatus.PAID, OrderStatus.DELIVERED)]
    pending_pickup = [o for o in orders if o.status is OrderStatus.PAID]
    delivered = [o for o in orders if o.status is OrderStatus.DELIVERED]
    pending_confirmation = [o for o in orders if o.status is OrderStatus.PENDING_CONFIRMATION]
    declined_ids = {o.student_id for o in orders if o.status is OrderStatus.DECLINED}
    settled_ids = {o.student_id for o in paid} | {o.student_id for o in pending_confirmation}

    class_students = session.execute(
        select(Student).where(Student.class_id == product.class_id).order_by(Student.name.asc())
    ).scalars().all()
    unpaid = [s for s in class_students if s.student_id not in settled_ids]

    return {
        "product": product,
        "total_sales": len(paid),
        "pending_pickup": len(pending_pickup),
        "pending_confirmation_count": len(pending_confirmation),
        "delivered": len(delivered),
        "unpaid_students": len(unpaid),
        "pending_orders": [_order_row(o) for o in pending_pickup],
        "pending_confirmation_orders": [
            {
                **_order_row(o),
                "evidence_url": resolve_evidence_url(storage, o.evidence_ref, ttl_seconds),
                "evidence_key": o.evidence_ref,
            }
            for o in pending_confirmation
        ],
        "paid_orders": [_order_row(o) for o in paid],
        "unpaid_students_list": [
            {
                "student_id": s.student_id,
                "name": s.name,
                "seat_id": s.seat_id,
                "status": "DECLINED" if s.student_id in declined_ids else "UNPAID",
            }
            for s in unpaid
        ],
    }


def _order_row(order: Order) -> dict:
    return {
        "order_id": order.order_id,
        "student_id": order.student_id,
        "student_name": order.student.name,
        "status": order.status.value,
        "redemption_code": order.redemption_code,
        "activation_phone": order.activation_phone,
        "created_at": order.created_at,
    }
