"""Errors raised by the order services."""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced to callers."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNAUTHORIZED = "UNAUTHORIZED"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    VALIDATION_FAILURE = "VALIDATION_FAILURE"


_DEFAULT_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_TRANSITION: 409,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.STORAGE_FAILURE: 502,
    ErrorKind.VALIDATION_FAILURE: 422,
}


class OrderRuleViolation(Exception):
    """Raised when an order operation cannot be applied."""

    def __init__(self, detail: str, kind: ErrorKind, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.detail = detail
        self.kind = kind
        self.status_code = status_code or _DEFAULT_STATUS_CODES[kind]

    @classmethod
    def not_found(cls, detail: str) -> "OrderRuleViolation":
        return cls(detail, ErrorKind.NOT_FOUND)

    @classmethod
    def invalid_transition(cls, detail: str) -> "OrderRuleViolation":
        return cls(detail, ErrorKind.INVALID_TRANSITION)

    @classmethod
    def unauthorized(cls, detail: str, status_code: int = 403) -> "OrderRuleViolation":
        return cls(detail, ErrorKind.UNAUTHORIZED, status_code)

    @classmethod
    def storage_failure(cls, detail: str) -> "OrderRuleViolation":
        return cls(detail, ErrorKind.STORAGE_FAILURE)

    @classmethod
    def validation(cls, detail: str) -> "OrderRuleViolation":
        return cls(detail, ErrorKind.VALIDATION_FAILURE)
