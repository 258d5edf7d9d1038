"""
Exception handlers producing the API's JSON error envelope.

Every error response has the shape ``{"detail", "code", "timestamp"}``
(see ``ErrorResponse``), whether it comes from a ``ClinicScribeError``,
request validation, or an unexpected failure.
"""

import logging
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.core.exceptions import ClinicScribeError
from src.core.models import ErrorResponse

logger = logging.getLogger(__name__)


def _envelope(status_code: int, detail: str, code: str, timestamp: str | None = None) -> JSONResponse:
    body = ErrorResponse(
        detail=detail,
        code=code,
        timestamp=timestamp or datetime.now(UTC).isoformat(),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_error_handlers(app: FastAPI) -> None:
    """Install the domain, validation (422) and catch-all (500) handlers on ``app``."""

    @app.exception_handler(ClinicScribeError)
    async def clinic_error_handler(_request: Request, exc: ClinicScribeError) -> JSONResponse:
        return _envelope(exc.status_code, exc.detail, exc.code, exc.timestamp)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return _envelope(422, str(exc), "VALIDATION_ERROR")

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log the failure; the client only sees a generic message."""
        logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
        return _envelope(500, "Internal server error", "INTERNAL_ERROR")
