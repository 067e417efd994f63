"""Order state transitions: evidence submission, confirmation, overrides."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from ..models import Order, OrderStatus, Product, Student, TargetStatus
from ..utils.codes import new_redemption_code, redemption_code_expression
from ..utils.datetime import utcnow
from .evidence_service import DEFAULT_URL_TTL_SECONDS, ObjectStorage, resolve_evidence_url
from .exceptions import OrderRuleViolation

logger = logging.getLogger(__name__)

CODE_BEARING_STATUSES = (OrderStatus.PAID, OrderStatus.DELIVERED)
RESUBMITTABLE_STATUSES = (OrderStatus.PENDING_CONFIRMATION, OrderStatus.DECLINED)

# Statuses each operator decision may be applied from. Reaching the target
# again is a no-op; DELIVERED never moves back.
_DECISION_SOURCES = {
    OrderStatus.PAID: (OrderStatus.PENDING_CONFIRMATION, OrderStatus.DECLINED),
    OrderStatus.DECLINED: (OrderStatus.PENDING_CONFIRMATION, OrderStatus.PAID),
}


def _ensure_student(session: Session, student_id: UUID) -> Student:
    stmt = select(Student).where(Student.student_id == student_id)
    student = session.execute(stmt).scalar_one_or_none()
    if student is None:
        raise OrderRuleViolation.not_found(f"Student {student_id} not found")
    return student


def ensure_students(session: Session, student_ids: Sequence[UUID]) -> None:
    """Fail unless every id refers to an existing student."""

    stmt = select(Student.student_id).where(Student.student_id.in_(student_ids))
    found = set(session.execute(stmt).scalars().all())
    missing = [student_id for student_id in student_ids if student_id not in found]
    if missing:
        raise OrderRuleViolation.not_found(
            f"{len(missing)} student(s) not found: {', '.join(str(m) for m in missing[:5])}"
        )


def ensure_product_access(session: Session, product_id: UUID, operator_id: Optional[UUID] = None) -> Product:
    """Load a product, checking ownership when an operator is acting."""

    stmt = select(Product).where(Product.product_id == product_id)
    product = session.execute(stmt).scalar_one_or_none()
    if product is None:
        raise OrderRuleViolation.not_found(f"Product {product_id} not found")
    if operator_id is not None and product.owner_id != operator_id:
        raise OrderRuleViolation.unauthorized("You do not manage this product.")
    return product


def _ensure_order(session: Session, order_id: UUID) -> Order:
    stmt = select(Order).where(Order.order_id == order_id)
    order = session.execute(stmt).scalar_one_or_none()
    if order is None:
        raise OrderRuleViolation.not_found(f"Order {order_id} not found")
    return order


def _current_status(session: Session, order_id: UUID) -> Optional[OrderStatus]:
    stmt = select(Order.status).where(Order.order_id == order_id)
    return session.execute(stmt).scalar_one_or_none()


def _reload(session: Session, order_id: UUID) -> Order:
    stmt = select(Order).where(Order.order_id == order_id).execution_options(populate_existing=True)
    return session.execute(stmt).scalar_one()


def find_order(session: Session, student_id: UUID, product_id: UUID) -> Optional[Order]:
    """Return the order for a (student, product) pair, bypassing stale identity-map state."""

    stmt = (
        select(Order)
        .where(Order.student_id == student_id, Order.product_id == product_id)
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).scalar_one_or_none()


def _insert_for(session: Session):
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


def upsert_orders(
    session: Session,
    *,
    student_ids: Iterable[UUID],
    product_id: UUID,
    status: OrderStatus,
) -> int:
    """Write ``status`` for every (student, product) pair in one statement.

    Rows are inserted or updated on the (student_id, product_id) key. When the
    status carries a redemption code, each row offers a fresh candidate and
    the stored code wins through COALESCE, so an existing code is never
    replaced and two concurrent writers cannot both assign one. Delivery
    fields are cleared for every status but DELIVERED, which keeps an earlier
    delivery time.
    """

    table = Order.__table__
    now = utcnow()
    delivered = status is OrderStatus.DELIVERED
    rows = [
        {
            "order_id": uuid.uuid4(),
            "student_id": student_id,
            "product_id": product_id,
            "status": status,
            "redemption_code": new_redemption_code() if status in CODE_BEARING_STATUSES else None,
            "created_at": now,
            "delivered_at": now if delivered else None,
        }
        for student_id in student_ids
    ]
    if not rows:
        return 0

    stmt = _insert_for(session)(table).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.student_id, table.c.product_id],
        set_={
            "status": stmt.excluded.status,
            "redemption_code": func.coalesce(table.c.redemption_code, stmt.excluded.redemption_code),
            "delivered_at": func.coalesce(table.c.delivered_at, stmt.excluded.delivered_at) if delivered else None,
            "delivered_by": table.c.delivered_by if delivered else None,
        },
    )
    session.execute(stmt)
    return len(rows)


def submit_evidence(
    session: Session,
    *,
    student_id: UUID,
    product_id: UUID,
    evidence_ref: str,
    activation_phone: Optional[str] = None,
    allow_after_payment: bool = True,
) -> Order:
    """Record payment proof and put the order back in the confirmation queue.

    The order is created when absent. ``created_at`` is refreshed so that a
    resubmission surfaces at the top of pending lists. Any prior status is
    overwritten and the redemption code is kept. With
    ``allow_after_payment`` false, PAID and DELIVERED orders keep their state.
    """

    if not evidence_ref:
        raise OrderRuleViolation.validation("Payment evidence is required.")

    student = _ensure_student(session, student_id)
    product = ensure_product_access(session, product_id)

    table = Order.__table__
    stmt = _insert_for(session)(table).values(
        order_id=uuid.uuid4(),
        student_id=student.student_id,
        product_id=product.product_id,
        status=OrderStatus.PENDING_CONFIRMATION,
        evidence_ref=evidence_ref,
        activation_phone=activation_phone or None,
        created_at=utcnow(),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.student_id, table.c.product_id],
        set_={
            "status": stmt.excluded.status,
            "evidence_ref": stmt.excluded.evidence_ref,
            "activation_phone": func.coalesce(stmt.excluded.activation_phone, table.c.activation_phone),
            "created_at": stmt.excluded.created_at,
            "delivered_at": None,
            "delivered_by": None,
        },
        where=None if allow_after_payment else table.c.status.in_(RESUBMITTABLE_STATUSES),
    )
    result = session.execute(stmt)
    if result.rowcount == 0:
        raise OrderRuleViolation.invalid_transition(
            "This order is already paid; payment evidence can no longer be replaced."
        )

    order = find_order(session, student.student_id, product.product_id)
    logger.info("evidence submitted for order %s (student %s, product %s)", order.order_id, student_id, product_id)
    return order


def _decide(session: Session, order_id: UUID, target: OrderStatus, operator_id: Optional[UUID]) -> Order:
    order = _ensure_order(session, order_id)
    if operator_id is not None:
        ensure_product_access(session, order.product_id, operator_id)

    values = {"status": target}
    if target in CODE_BEARING_STATUSES:
        values["redemption_code"] = func.coalesce(Order.redemption_code, new_redemption_code())

    stmt = (
        update(Order)
        .where(Order.order_id == order_id, Order.status.in_(_DECISION_SOURCES[target]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount == 0:
        current = _current_status(session, order_id)
        if current is None:
            raise OrderRuleViolation.not_found(f"Order {order_id} not found")
        if current is not target:
            raise OrderRuleViolation.invalid_transition(
                f"Order is {current.value} and cannot be moved to {target.value}."
            )
    return _reload(session, order_id)


def confirm(session: Session, *, order_id: UUID, operator_id: Optional[UUID] = None) -> Order:
    """Accept the submitted proof: PENDING_CONFIRMATION -> PAID."""

    order = _decide(session, order_id, OrderStatus.PAID, operator_id)
    logger.info("order %s confirmed", order_id)
    return order


def decline(session: Session, *, order_id: UUID, operator_id: Optional[UUID] = None) -> Order:
    """Reject the submitted proof: PENDING_CONFIRMATION -> DECLINED."""

    order = _decide(session, order_id, OrderStatus.DECLINED, operator_id)
    logger.info("order %s declined", order_id)
    return order


def confirm_all_pending(session: Session, *, product_id: UUID, operator_id: Optional[UUID] = None) -> int:
    """Confirm every pending order of a product with a single UPDATE."""

    ensure_product_access(session, product_id, operator_id)

    code = redemption_code_expression(session.get_bind().dialect.name)
    stmt = (
        update(Order)
        .where(Order.product_id == product_id, Order.status == OrderStatus.PENDING_CONFIRMATION)
        .values(status=OrderStatus.PAID, redemption_code=func.coalesce(Order.redemption_code, code))
        .execution_options(synchronize_session=False)
    )
    count = session.execute(stmt).rowcount
    logger.info("bulk confirmed %d pending order(s) for product %s", count, product_id)
    return count


def set_status(
    session: Session,
    *,
    student_id: UUID,
    product_id: UUID,
    status: TargetStatus,
    operator_id: Optional[UUID] = None,
) -> Optional[Order]:
    """Administrative override of one student's order status.

    ``UNPAID`` removes the order; every other target upserts it. Returns the
    resulting order, or ``None`` when the student is now unpaid.
    """

    product = ensure_product_access(session, product_id, operator_id)
    student = _ensure_student(session, student_id)

    if status is TargetStatus.UNPAID:
        stmt = (
            delete(Order)
            .where(Order.student_id == student.student_id, Order.product_id == product.product_id)
            .execution_options(synchronize_session=False)
        )
        session.execute(stmt)
        logger.info("order for student %s, product %s reset to UNPAID", student_id, product_id)
        return None

    upsert_orders(session, student_ids=[student.student_id], product_id=product.product_id, status=status.stored)
    logger.info("order for student %s, product %s set to %s", student_id, product_id, status.value)
    return find_order(session, student.student_id, product.product_id)


def get_student_order(
    session: Session,
    storage: ObjectStorage,
    *,
    student_id: UUID,
    product_id: UUID,
    ttl_seconds: int = DEFAULT_URL_TTL_SECONDS,
) -> tuple[Optional[Order], Optional[str]]:
    """Return a student's order for a product and its displayable evidence URL."""

    order = find_order(session, student_id, product_id)
    if order is None:
        return None, None
    return order, resolve_evidence_url(storage, order.evidence_ref, ttl_seconds)
