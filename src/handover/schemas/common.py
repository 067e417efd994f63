"""Shared response envelopes."""

from typing import Optional

from pydantic import BaseModel


class ActionResult(BaseModel):
    """Outcome of a mutating operation."""

    success: bool
    error: Optional[str] = None
    kind: Optional[str] = None


class CountResult(ActionResult):
    count: int = 0
