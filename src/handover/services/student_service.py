"""Student directory lookups."""

from __future__ import annotations

from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from ..models import Order, Product, Student
from .exceptions import OrderRuleViolation

MIN_QUERY_LENGTH = 3
SEARCH_LIMIT = 10


def search_students(session: Session, *, query: str, class_id: Optional[int] = None) -> Sequence[Student]:
    """Match students by name or seat id; short queries return nothing."""

    query = (query or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        return []

    pattern = f"%{query}%"
    stmt = (
        select(Student)
        .where(or_(Student.name.ilike(pattern), Student.seat_id.ilike(pattern)))
        .order_by(Student.name.asc())
        .limit(SEARCH_LIMIT)
    )
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    return session.execute(stmt).scalars().all()


def get_student(session: Session, student_id: UUID) -> Student:
    stmt = select(Student).where(Student.student_id == student_id)
    student = session.execute(stmt).scalar_one_or_none()
    if student is None:
        raise OrderRuleViolation.not_found(f"Student {student_id} not found")
    return student


def student_catalog(session: Session, *, student_id: UUID) -> tuple[Student, list[tuple[Product, Optional[Order]]]]:
    """Active products offered to the student's class, each with the student's order."""

    student = get_student(session, student_id)

    products = session.execute(
        select(Product)
        .options(joinedload(Product.owner))
        .where(Product.class_id == student.class_id, Product.is_active.is_(True))
        .order_by(Product.name.asc())
    ).scalars().all()

    orders = session.execute(
        select(Order).where(
            Order.student_id == student.student_id,
            Order.product_id.in_([p.product_id for p in products]),
        )
    ).scalars().all()
    by_product = {o.product_id: o for o in orders}

    return student, [(product, by_product.get(product.product_id)) for product in products]
