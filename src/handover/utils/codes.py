"""Redemption code generation."""

import uuid

from sqlalchemy import String, cast, func
from sqlalchemy.sql.elements import ColumnElement


def new_redemption_code() -> str:
    """Return a fresh random redemption code formatted as a UUID string."""

    return str(uuid.uuid4())


def redemption_code_expression(dialect_name: str) -> ColumnElement:
    """SQL expression producing a distinct UUID-formatted code per evaluated row."""

    if dialect_name == "postgresql":
        return cast(func.gen_random_uuid(), String)

    # SQLite has no UUID function; assemble 32 random hex digits in 8-4-4-4-12 groups.
    groups = [
        func.lower(func.hex(func.randomblob(size)), type_=String)
        for size in (4, 2, 2, 2, 6)
    ]
    expression = groups[0]
    for group in groups[1:]:
        expression = expression.concat("-").concat(group)
    return expression
