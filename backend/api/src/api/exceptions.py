"""FastAPI exception handlers and error response rendering.

Service operations return ``Err(ServiceError)``; routes pass that error to
``error_response``. Exceptions that still reach the app (PaymentError raised
by route code, request validation failures, anything unexpected) are
rendered with the same envelope.

The ErrorCode-to-HTTP status mapping:
- 400 Bad Request: caller input and webhook signature problems
- 500 Internal Server Error: configuration, processor, missing records,
  store failures (the processor retries webhooks on 5xx)

Usage:
    from api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR

from api.models.common import ErrorResponse, format_validation_errors
from storefront.models import ErrorCode, PaymentError, ServiceError
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: HTTP_400_BAD_REQUEST,
    ErrorCode.WEBHOOK_SIGNATURE: HTTP_400_BAD_REQUEST,
    ErrorCode.CONFIGURATION: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.PROCESSOR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.NOT_FOUND: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.PERSISTENCE: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL: HTTP_500_INTERNAL_SERVER_ERROR,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode (500 if not mapped)."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_500_INTERNAL_SERVER_ERROR)


def error_response(error: ServiceError) -> JSONResponse:
    """Render a ServiceError as a JSON response with the mapped status."""
    return JSONResponse(
        status_code=get_http_status_for_error(error.error_code),
        content=ErrorResponse.from_service_error(error).model_dump(mode="json"),
    )


async def payment_error_handler(request: Request, exc: PaymentError) -> JSONResponse:
    return error_response(exc.to_service_error())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render malformed bodies (bad JSON, wrong types) as 400 ERR_VALIDATION."""
    logger.info("Request validation failed for %s: %d errors", request.url.path, len(exc.errors()))
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=format_validation_errors(list(exc.errors())).model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without exposing internal details."""
    logger.exception("Unhandled exception: %s", exc)
    return error_response(ServiceError.from_code(ErrorCode.INTERNAL))


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Args:
        app: The FastAPI application instance.
    """
    app.add_exception_handler(PaymentError, payment_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
