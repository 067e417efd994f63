"""SQLAlchemy models for Handover."""

from .operator import Operator
from .order import Order, OrderStatus, TargetStatus
from .product import Product, ProductKind
from .student import Student

__all__ = [
    "Operator",
    "Order",
    "OrderStatus",
    "Product",
    "ProductKind",
    "Student",
    "TargetStatus",
]
