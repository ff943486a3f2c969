"""Error handlers for the matching API.

Every failure leaves the service in the same envelope:

    {"error": {"message": ..., "status_code": ..., "details": {...}, "request_id": ...}}

Provider outages get their own handler so clients can tell "try again"
apart from a legitimate empty match.
"""

import traceback

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from core.exceptions import AppException, ProviderError
from core.logger import get_logger

logger = get_logger("core.error_handlers")

RETRY_AFTER_SECONDS = 5
PROVIDER_UNAVAILABLE_MESSAGE = "The matching service is temporarily unavailable, please try again"


def request_id_of(request: Request):
    """Correlation id assigned by the request-logging middleware, if any."""
    return getattr(request.state, "request_id", None)


def create_error_response(
    message: str,
    status_code: int = 500,
    details: dict = None,
    request_id: str = None,
    headers: dict = None
) -> JSONResponse:
    """Build the error envelope shared by all handlers.

    Args:
        message: Client-facing message.
        status_code: HTTP status code.
        details: Optional structured context (field errors, provider name...).
        request_id: Optional correlation id echoed back to the client.
        headers: Optional extra response headers.
    """
    error_body = {"message": message, "status_code": status_code}
    if details:
        error_body["details"] = details
    if request_id:
        error_body["request_id"] = request_id

    return JSONResponse(status_code=status_code, content={"error": error_body}, headers=headers)


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Not-found, bad image input, schema and configuration errors."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)

    return create_error_response(
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id_of(request)
    )


async def provider_exception_handler(request: Request, exc: ProviderError) -> JSONResponse:
    """Embedding or analysis collaborator failed; report it as retryable."""
    logger.error(
        "Provider failure on %s %s: %s (%s)",
        request.method,
        request.url.path,
        exc.message,
        exc.details.get("reason", "no reason given")
    )

    details = dict(exc.details)
    details["retryable"] = True
    return create_error_response(
        message=PROVIDER_UNAVAILABLE_MESSAGE,
        status_code=exc.status_code,
        details=details,
        request_id=request_id_of(request),
        headers={"Retry-After": str(RETRY_AFTER_SECONDS)}
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Flatten pydantic request errors into `field`/`message`/`type` entries."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)

    return create_error_response(
        message="Validation error",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details={"validation_errors": errors},
        request_id=request_id_of(request)
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception on %s %s: %s\n%s",
        request.method,
        request.url.path,
        exc,
        traceback.format_exc()
    )

    return create_error_response(
        message="An internal server error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        details={"type": "internal_error"},
        request_id=request_id_of(request)
    )


def register_exception_handlers(app):
    """Register the handlers; ProviderError goes first since it subclasses AppException."""
    app.add_exception_handler(ProviderError, provider_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    logger.info("Exception handlers registered")
