"""FastAPI application entrypoint for Handover."""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import sessionmaker

from .api.v1.router import api_router
from .core.config import Settings, get_settings
from .core.database import build_engine, build_session_factory
from .core.logging import configure_logging
from .services.evidence_service import ObjectStorage, S3ObjectStorage
from .services.exceptions import ErrorKind, OrderRuleViolation


async def _order_rule_violation_handler(request: Request, exc: OrderRuleViolation) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.detail, "kind": exc.kind.value},
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content={"success": False, "error": problems or "Invalid request", "kind": ErrorKind.VALIDATION_FAILURE.value},
    )


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker] = None,
    storage: Optional[ObjectStorage] = None,
) -> FastAPI:
    """Instantiate and configure the FastAPI application.

    The session factory and object storage are built from settings unless
    supplied, and live on ``app.state`` for the request dependencies.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Handover API", version="0.1.0")
    app.state.settings = settings
    app.state.session_factory = session_factory or build_session_factory(build_engine(settings.database_url))
    app.state.storage = storage or S3ObjectStorage.from_settings(settings)

    app.add_exception_handler(OrderRuleViolation, _order_rule_violation_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
