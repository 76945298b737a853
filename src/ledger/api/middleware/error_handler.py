"""Global error handling.

All exceptions are converted to one JSON shape with an error code from the
catalog, a technical message, a user message, a suggestion and whether a
retry makes sense.
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from ledger.config import settings
from ledger.core.errors import get_error
from ledger.core.exceptions import LedgerError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, error_code: str, message: str | None = None) -> JSONResponse:
    error_info = get_error(error_code)
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message or error_info["message"],
            "user_message": error_info["user_message"],
            "suggestion": error_info["suggestion"],
            "retry_allowed": error_info["retry_allowed"],
        },
    )


async def handle_ledger_error(request: Request, exc: LedgerError) -> JSONResponse:
    """Handle domain exceptions raised by parsers and services.

    The specific message (e.g. which category owns a keyword) wins over the
    catalog's generic one.
    """
    extra = {"error_code": exc.error_code, "path": request.url.path, "method": request.method}
    if settings.debug:
        extra["details"] = exc.details

    log = logger.error if exc.http_status >= 500 else logger.warning
    log(f"Ledger error: {exc.error_code}", extra=extra)

    return _error_response(exc.http_status, exc.error_code, exc.message)


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Args:
        request: The incoming request
        exc: The validation error

    Returns:
        JSONResponse with field-level messages joined
    """
    errors = exc.errors()
    error_messages = []

    for error in errors:
        field = ".".join(str(x) for x in error.get("loc", []))
        msg = error.get("msg", "Invalid value")
        error_messages.append(f"{field}: {msg}")

    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        extra["errors"] = errors
    logger.warning(f"Validation error on {request.url.path}", extra=extra)

    return _error_response(status.HTTP_400_BAD_REQUEST, "VAL_001", " | ".join(error_messages))


async def handle_integrity_error(
    request: Request, exc: IntegrityError
) -> JSONResponse:
    # Do not log str(exc): it can include SQL + bound parameters.
    extra = {"path": request.url.path, "method": request.method}
    if settings.debug:
        logger.exception(f"Database integrity error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Database integrity error on {request.url.path}", extra=extra)

    error_msg = str(exc).lower()
    if "unique" in error_msg or "duplicate" in error_msg:
        return _error_response(status.HTTP_409_CONFLICT, "DB_002")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "DB_001")


async def handle_generic_error(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internals."""
    extra = {
        "error_type": type(exc).__name__,
        "path": request.url.path,
        "method": request.method,
    }
    if settings.debug:
        logger.exception(f"Unexpected error on {request.url.path}", extra=extra)
    else:
        logger.error(f"Unexpected error on {request.url.path}", extra=extra)

    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "SYS_001")
