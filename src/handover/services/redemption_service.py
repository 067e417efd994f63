"""Redemption of order codes at hand-over time."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Collection, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session, joinedload

from ..models import Order, OrderStatus
from ..utils.datetime import utcnow
from .exceptions import OrderRuleViolation

logger = logging.getLogger(__name__)


class RedemptionOutcome(str, enum.Enum):
    """Result of presenting a redemption code."""

    DELIVERED = "DELIVERED"
    ALREADY_DELIVERED = "ALREADY_DELIVERED"
    NOT_PAID = "NOT_PAID"
    DECLINED = "DECLINED"
    NOT_FOUND = "NOT_FOUND"


_MESSAGES = {
    RedemptionOutcome.DELIVERED: "Order delivered.",
    RedemptionOutcome.ALREADY_DELIVERED: "This order has already been delivered.",
    RedemptionOutcome.NOT_PAID: "This order has not been paid.",
    RedemptionOutcome.DECLINED: "Payment for this order was declined.",
    RedemptionOutcome.NOT_FOUND: "Unknown redemption code.",
}

_DELIVERY_ATTEMPTS = 2

_OUTCOME_FOR_STATUS = {
    OrderStatus.DELIVERED: RedemptionOutcome.ALREADY_DELIVERED,
    OrderStatus.PENDING_CONFIRMATION: RedemptionOutcome.NOT_PAID,
    OrderStatus.DECLINED: RedemptionOutcome.DECLINED,
}


@dataclass(frozen=True)
class RedemptionResult:
    """What the scanning operator is shown after presenting a code."""

    outcome: RedemptionOutcome
    order_id: Optional[UUID] = None
    student_name: Optional[str] = None
    product_name: Optional[str] = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.outcome is RedemptionOutcome.DELIVERED

    @classmethod
    def for_order(cls, outcome: RedemptionOutcome, order: Optional[Order] = None, message: Optional[str] = None):
        if order is None:
            return cls(outcome=outcome, message=message or _MESSAGES[outcome])
        return cls(
            outcome=outcome,
            order_id=order.order_id,
            student_name=order.student.name,
            product_name=order.product.name,
            message=message or _MESSAGES[outcome],
        )


def find_by_code(session: Session, code: str) -> Optional[Order]:
    stmt = (
        select(Order)
        .options(joinedload(Order.student), joinedload(Order.product))
        .where(Order.redemption_code == code)
        .execution_options(populate_existing=True)
    )
    return session.execute(stmt).scalar_one_or_none()


def _in_scope(order: Order, product_ids: Optional[Collection[UUID]], operator_id: Optional[UUID]) -> bool:
    if product_ids is not None and order.product_id not in product_ids:
        return False
    if operator_id is not None and order.product.owner_id != operator_id:
        return False
    return True


def _failure_for(status: OrderStatus, order: Order) -> RedemptionResult:
    outcome = _OUTCOME_FOR_STATUS[status]
    message = None
    if status is OrderStatus.PENDING_CONFIRMATION:
        message = "Payment for this order is still awaiting confirmation."
    return RedemptionResult.for_order(outcome, order, message)


def deliver_if_paid(session: Session, order: Order, *, delivered_by: Optional[UUID] = None) -> RedemptionResult:
    """Move ``order`` from PAID to DELIVERED unless someone else got there first.

    The write only matches while the stored status is still PAID, so among
    concurrent callers presenting the same code exactly one succeeds. A write
    that misses while the re-read status is still PAID is attempted once more.
    """

    for _ in range(_DELIVERY_ATTEMPTS):
        stmt = (
            update(Order)
            .where(Order.order_id == order.order_id, Order.status == OrderStatus.PAID)
            .values(status=OrderStatus.DELIVERED, delivered_at=utcnow(), delivered_by=delivered_by)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount == 1:
            logger.info("order %s delivered to %s (%s)", order.order_id, order.student.name, order.product.name)
            return RedemptionResult.for_order(RedemptionOutcome.DELIVERED, order)

        current = session.execute(select(Order.status).where(Order.order_id == order.order_id)).scalar_one_or_none()
        if current is None:
            return RedemptionResult.for_order(RedemptionOutcome.NOT_FOUND)
        if current is not OrderStatus.PAID:
            logger.info("order %s not delivered, status is %s", order.order_id, current.value)
            return _failure_for(current, order)
        logger.warning("delivery of order %s matched no row while still PAID", order.order_id)

    raise OrderRuleViolation.storage_failure("The order could not be marked as delivered; scan the code again.")


def redeem(
    session: Session,
    *,
    code: str,
    product_ids: Optional[Collection[UUID]] = None,
    operator_id: Optional[UUID] = None,
) -> RedemptionResult:
    """Resolve a scanned or typed code and hand the order over.

    ``product_ids`` restricts the redemption to the products the operator is
    currently serving; codes for other products, or for products the
    operator does not own, are reported as unknown.
    """

    code = (code or "").strip()
    if not code:
        raise OrderRuleViolation.validation("Redemption code is required.")

    order = find_by_code(session, code)
    if order is None or not _in_scope(order, product_ids, operator_id):
        logger.info("redemption code not found or out of scope")
        return RedemptionResult.for_order(RedemptionOutcome.NOT_FOUND)

    if order.status is not OrderStatus.PAID:
        return _failure_for(order.status, order)

    return deliver_if_paid(session, order, delivered_by=operator_id)
