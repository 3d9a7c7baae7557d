"""
Error handling middleware.

Standardizes all API error responses to include:
- error_code: machine-readable identifier
- message: human-readable description
- hint: suggested recovery action
"""

import json
import traceback
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from src.application.dto.responses import ErrorResponse
from src.config import get_logger
from src.core.exceptions import (
    BusinessRuleViolation,
    CommissionNotFoundError,
    CommissionResolutionError,
    CommissionRuleNotFoundError,
    ConfigurationError,
    ConversionFailedError,
    DuplicateCommissionError,
    EngineError,
    LineItemNotFoundError,
    OpportunityNotFoundError,
    ProductNotFoundError,
    SaleNotFoundError,
    ServiceRecordNotFoundError,
    StorageError,
    ValidationError,
)

logger = get_logger(__name__)


# Map exceptions to HTTP status codes. First match wins, so subclasses
# come before their bases.
EXCEPTION_STATUS_MAP: dict[type[Exception], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    OpportunityNotFoundError: status.HTTP_404_NOT_FOUND,
    LineItemNotFoundError: status.HTTP_404_NOT_FOUND,
    SaleNotFoundError: status.HTTP_404_NOT_FOUND,
    CommissionNotFoundError: status.HTTP_404_NOT_FOUND,
    CommissionRuleNotFoundError: status.HTTP_404_NOT_FOUND,
    ProductNotFoundError: status.HTTP_404_NOT_FOUND,
    ServiceRecordNotFoundError: status.HTTP_404_NOT_FOUND,
    DuplicateCommissionError: status.HTTP_409_CONFLICT,
    ConversionFailedError: status.HTTP_409_CONFLICT,
    BusinessRuleViolation: status.HTTP_409_CONFLICT,
    CommissionResolutionError: status.HTTP_409_CONFLICT,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigurationError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ValueError: status.HTTP_400_BAD_REQUEST,
}

# Hint messages per error code / exception type
HINT_MAP: dict[str, str] = {
    "OPPORTUNITY_NOT_FOUND": "Check the opportunity ID and try GET /api/opportunities to list them.",
    "LINE_ITEM_NOT_FOUND": "Fetch the opportunity to see the current line item IDs.",
    "SALE_NOT_FOUND": "Check the sale ID and try GET /api/sales to list sales.",
    "COMMISSION_NOT_FOUND": "The sale may have no commission yet. Try POST /api/commissions/sales/{id}/retrigger.",
    "COMMISSION_RULE_NOT_FOUND": "Try GET /api/commission-rules to list rules.",
    "PRODUCT_NOT_FOUND": "Check the product ID and try GET /api/catalog/products.",
    "SERVICE_RECORD_NOT_FOUND": "Register the service record under /api/catalog/services first.",
    "DISCOUNT_EXCEEDS_LIMIT": "Lower the discount or raise the product's max_discount_percent.",
    "NO_ITEMS_NO_MANUAL_VALUE": "Add a line item or set manual_gross_value before closing.",
    "MISSING_PAYMENT_METHOD": "Send one or two payment_methods when moving to won.",
    "INVALID_STAGE_TRANSITION": "Won is final; only an admin may reopen a lost opportunity.",
    "OPPORTUNITY_CLOSED": "Won and lost opportunities are read-only.",
    "MANUAL_VALUE_NOT_ALLOWED": "Remove the line items or edit them instead of the manual value.",
    "PRODUCT_INACTIVE": "Reactivate the product in the catalog or choose another.",
    "INVALID_PAY_STATUS_TRANSITION": "Pay status moves pending -> approved -> paid; cancel before paid.",
    "SALE_CANCELED": "Canceled sales cannot be edited.",
    "CONVERSION_FAILED": "Nothing was saved. Retry the request with the same idempotency key.",
    "NO_APPLICABLE_RULE": "Add a product, category or global commission rule, then re-trigger.",
    "COMMISSION_BASE_UNAVAILABLE": "The sale lacks the service total the rule's base needs.",
    "DUPLICATE_COMMISSION": "Fetch the existing commission for the sale instead.",
    "VALIDATION_ERROR": "Check the request body against the API schema.",
    "DATABASE_ERROR": "A database operation failed. Check server logs.",
    "ValueError": "A parameter value is invalid. Check the request.",
}

# Default hints by HTTP status code
STATUS_HINTS: dict[int, str] = {
    400: "Check the request parameters and body.",
    401: "Send the X-User-Id and X-User-Role headers.",
    403: "Your role does not allow this operation.",
    404: "The requested resource was not found. Verify the ID.",
    409: "The request conflicts with the current state of the resource.",
    422: "The request could not be processed. Check the input format.",
    500: "An internal error occurred. Check server logs.",
}


def _get_hint(error_code: str, status_code: int) -> str:
    """Resolve hint from error code, falling back to status-based hint."""
    return HINT_MAP.get(error_code) or STATUS_HINTS.get(status_code, "")


def _status_for(exc: Exception) -> int:
    for exc_type, code in EXCEPTION_STATUS_MAP.items():
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Convert exception to standardized JSON response."""
    status_code = _status_for(exc)

    # Prefer EngineError.code, fall back to class name
    if isinstance(exc, EngineError):
        error_code = exc.code
        message = exc.message
        detail = json.dumps(exc.details, default=str) if exc.details else None
    else:
        error_code = exc.__class__.__name__
        message = str(exc)
        detail = None

    request_id = getattr(request.state, "request_id", None)

    log = logger.error if status_code >= 500 else logger.warning
    log(
        "request_error",
        request_id=request_id,
        path=request.url.path,
        error_type=error_code,
        error=message,
        traceback=traceback.format_exc() if status_code >= 500 else None,
    )

    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(
            error_code=error_code,
            message=message,
            hint=_get_hint(error_code, status_code),
            detail=detail,
            path=request.url.path,
        ).model_dump(mode="json"),
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Converts exceptions that escape the routers to standardized JSON
    error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Handle request with error catching."""
        try:
            return await call_next(request)

        except Exception as e:
            return error_response(request, e)


def setup_exception_handlers(app: FastAPI) -> None:
    """Set up FastAPI exception handlers."""
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException

    @app.exception_handler(EngineError)
    async def engine_exception_handler(request: Request, exc: EngineError) -> JSONResponse:
        """Handle domain errors raised by use cases."""
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        """Handle Pydantic validation errors."""
        errors = []
        for error in exc.errors():
            loc = " -> ".join(str(part) for part in error["loc"])
            errors.append(f"{loc}: {error['msg']}")

        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error_code="VALIDATION_ERROR",
                message="Request validation failed",
                hint="Check the request body fields and types.",
                detail="; ".join(errors),
                path=request.url.path,
            ).model_dump(mode="json"),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request,
        exc: HTTPException,
    ) -> JSONResponse:
        """Handle HTTP exceptions with standardized format."""
        error_code = _infer_error_code(exc.status_code)
        hint = _get_hint(error_code, exc.status_code)

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error_code=error_code,
                message=exc.detail or "An error occurred",
                hint=hint,
                path=request.url.path,
            ).model_dump(mode="json"),
        )


def _infer_error_code(status_code: int) -> str:
    """Infer a machine-readable error code from an HTTPException status."""
    return {
        400: "BAD_REQUEST",
        401: "UNAUTHENTICATED",
        403: "FORBIDDEN",
        404: "NOT_FOUND",
        409: "CONFLICT",
        422: "UNPROCESSABLE_ENTITY",
    }.get(status_code, "HTTP_ERROR")
