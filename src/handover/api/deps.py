"""Request-scoped dependencies shared by the v1 endpoints."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.database import get_db
from ..models import Operator
from ..services.evidence_service import ObjectStorage
from ..services.exceptions import OrderRuleViolation


def get_storage(request: Request) -> ObjectStorage:
    return request.app.state.storage


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_operator(
    x_operator_id: Optional[UUID] = Header(None, description="Principal id supplied by the identity resolver"),
    db: Session = Depends(get_db),
) -> UUID:
    """Resolve the acting operator; authentication itself happens upstream."""

    if x_operator_id is None:
        raise OrderRuleViolation.unauthorized("Operator identity is required.", status_code=401)
    operator = db.execute(select(Operator.operator_id).where(Operator.operator_id == x_operator_id)).scalar_one_or_none()
    if operator is None:
        raise OrderRuleViolation.unauthorized("Unknown operator.", status_code=401)
    return operator
