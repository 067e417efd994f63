"""Service layer exports."""

from . import (
	batch_service,
	evidence_service,
	order_service,
	product_service,
	redemption_service,
	student_service,
)

__all__ = [
	"batch_service",
	"evidence_service",
	"order_service",
	"product_service",
	"redemption_service",
	"student_service",
]
