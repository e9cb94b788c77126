"""FastAPI exception handlers producing ErrorResponse bodies."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from signoff.errors.exceptions import (
    AuthorizationError,
    ConcurrentModificationError,
    SignoffError,
)
from signoff.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_json(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "trc_unknown")
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(SignoffError)
    async def signoff_error_handler(request: Request, exc: SignoffError):
        if isinstance(exc, (AuthorizationError, ConcurrentModificationError)):
            logger.warning(
                "approval_action_refused",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "code": exc.code,
                    "reason": exc.message,
                    "details": exc.details,
                },
            )
        return _error_json(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_json(request, 400, "VALIDATION_ERROR", "Request validation failed", details)
