"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses → appropriate HTTP status (400, 403, 500, 503)
- Unexpected Exception → generic 500 (safety net)
- Server-side failures never echo the original message to the client
- All responses include request_id for log correlation
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from storefront.core.errors import (
    AppError,
    AuthenticationAppError,
    LookupFailedAppError,
    MalformedRecordAppError,
)
from storefront.core.logging import get_request_id

logger = logging.getLogger(__name__)

GENERIC_RETRY_MESSAGE = "The service is temporarily unavailable. Please try again later."
GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def _status_for(exc: AppError) -> int:
    if isinstance(exc, AuthenticationAppError):
        return 403
    if isinstance(exc, LookupFailedAppError):
        return 503
    if isinstance(exc, MalformedRecordAppError):
        return 500
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Client faults (validation, authentication) return their own message and
    details. Server faults (lookup failures, malformed records) are logged
    with full detail and answered with a generic message.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)
    server_fault = status_code >= 500

    log = logger.error if server_fault else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    error_content: dict = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }

    headers = None
    if isinstance(exc, LookupFailedAppError):
        error_content["message"] = GENERIC_RETRY_MESSAGE
        error_content["details"] = {"retryable": True}
        headers = {"Retry-After": "5"}
    elif server_fault:
        error_content["message"] = GENERIC_ERROR_MESSAGE
    elif exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning a generic
    message. No stack traces or exception text reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": GENERIC_ERROR_MESSAGE,
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> setup_exception_handlers(app)
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
