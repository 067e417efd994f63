"""Batch status changes applied to many students of one product."""

from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Order, TargetStatus
from .exceptions import OrderRuleViolation
from .order_service import ensure_product_access, ensure_students, upsert_orders

logger = logging.getLogger(__name__)


def apply_batch_status(
    session: Session,
    *,
    student_ids: Sequence[UUID],
    product_id: UUID,
    status: TargetStatus,
    operator_id: Optional[UUID] = None,
) -> int:
    """Set ``status`` for every listed student as one all-or-nothing unit.

    Returns the number of rows written (or removed, for ``UNPAID``). On any
    failure the savepoint is rolled back, so no student in the batch is
    changed, and a STORAGE_FAILURE violation is raised.
    """

    unique_ids = list(dict.fromkeys(student_ids))
    if not unique_ids:
        raise OrderRuleViolation.validation("Select at least one student.")

    product = ensure_product_access(session, product_id, operator_id)
    ensure_students(session, unique_ids)

    try:
        with session.begin_nested():
            if status is TargetStatus.UNPAID:
                stmt = (
                    delete(Order)
                    .where(Order.product_id == product.product_id, Order.student_id.in_(unique_ids))
                    .execution_options(synchronize_session=False)
                )
                affected = session.execute(stmt).rowcount
            else:
                affected = upsert_orders(
                    session,
                    student_ids=unique_ids,
                    product_id=product.product_id,
                    status=status.stored,
                )
    except SQLAlchemyError as exc:
        logger.exception("batch %s for product %s failed", status.value, product_id)
        raise OrderRuleViolation.storage_failure("Batch update failed; no changes were applied.") from exc

    logger.info(
        "batch set %d order(s) of product %s to %s",
        affected,
        product_id,
        status.value,
    )
    return affected
