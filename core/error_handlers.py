"""Error handlers for FastAPI application.

Every error body has the same shape::

    {"request_status": "failed",
     "error": {"message": ..., "status_code": ..., "details": {...}}}

Application exceptions carry their own status; request validation errors
become 400 with the first violation as the message.
"""

from typing import Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from core.exceptions import AppException, AuthenticationError, TransactionAbortedError
from core.logger import get_logger

logger = get_logger("core.error_handlers")

# seconds a client should wait before retrying an aborted transaction
RETRY_AFTER_SECONDS = 1


def create_error_response(
    message: str,
    status_code: int = 500,
    details: dict = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Create a standardized error response.

    Args:
        message: Error message.
        status_code: HTTP status code.
        details: Optional error details dictionary.
        headers: Optional extra response headers.

    Returns:
        JSONResponse with the failed envelope.
    """
    error_body = {
        "message": message,
        "status_code": status_code,
    }
    if details:
        error_body["details"] = details

    return JSONResponse(
        status_code=status_code,
        content={"request_status": "failed", "error": error_body},
        headers=headers,
    )


def _headers_for(exc: AppException) -> Optional[Dict[str, str]]:
    if isinstance(exc, AuthenticationError):
        return {"WWW-Authenticate": "Bearer"}
    if isinstance(exc, TransactionAbortedError):
        return {"Retry-After": str(RETRY_AFTER_SECONDS)}
    return None


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle custom application exceptions.

    Server-side failures (5xx) are logged at ERROR, client errors at WARNING.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)

    return create_error_response(
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        headers=_headers_for(exc),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    The first violation becomes the error message, e.g.
    ``"body.amount: Input should be greater than 0"``; the full list is kept
    in the details.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)

    message = "Validation error"
    if errors:
        message = "%s: %s" % (errors[0]["field"], errors[0]["message"])

    return create_error_response(
        message=message,
        status_code=status.HTTP_400_BAD_REQUEST,
        details={"validation_errors": errors}
    )


async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors raised outside an `atomic` block."""
    logger.error(
        "Database error on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=True
    )

    # Don't expose internal database errors to clients
    return create_error_response(
        message="A database error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"type": "database_error"}
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle all unhandled exceptions."""
    logger.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=True
    )

    return create_error_response(
        message="An internal server error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"type": "internal_error"}
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
