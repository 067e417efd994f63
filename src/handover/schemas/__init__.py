"""Public schema exports."""

from .common import ActionResult, CountResult
from .order import BatchStatusUpdate, OrderRead, StatusUpdate
from .product import ProductCreate, ProductRead, ProductStats
from .redemption import RedemptionRequest, RedemptionResponse
from .student import CatalogEntry, StudentCatalog, StudentSummary

__all__ = [
	"ActionResult",
	"BatchStatusUpdate",
	"CatalogEntry",
	"CountResult",
	"OrderRead",
	"ProductCreate",
	"ProductRead",
	"ProductStats",
	"RedemptionRequest",
	"RedemptionResponse",
	"StatusUpdate",
	"StudentCatalog",
	"StudentSummary",
]
