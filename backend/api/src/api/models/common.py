"""Shared API request/response models.

Error envelopes and validation error formatting. Domain models live in
``storefront.models``; this module holds HTTP concerns only.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from storefront.models import ErrorCode, ServiceError

__all__ = [
    "ErrorCode",
    "ErrorResponse",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
    "format_validation_errors",
]


class ErrorResponse(ServiceError):
    """Error body returned for every failed request.

    ``error`` repeats ``message`` for clients that read the flat
    ``{"error": "..."}`` shape.
    """

    error: str = Field(..., description="Same as message")

    @classmethod
    def from_service_error(cls, error: ServiceError) -> "ErrorResponse":
        return cls(**error.model_dump(), error=error.message)


class ValidationErrorDetail(BaseModel):
    """Detail of a single validation error."""

    model_config = ConfigDict(strict=True)

    loc: list[str | int] = Field(
        ...,
        description="Path to the field that failed validation",
        examples=[["body", "amount"]],
    )
    msg: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Input should be a valid decimal"],
    )
    type: str = Field(
        ...,
        description="Error type identifier",
        examples=["decimal_parsing"],
    )


class ValidationErrorResponse(BaseModel):
    """Response format for request validation errors (HTTP 400).

    Same envelope as ``ErrorResponse`` with a list of field errors as details.
    """

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: str = ErrorCode.VALIDATION.value
    message: str = "Request validation failed"
    recovery: str = "Check the request fields and try again"
    details: list[ValidationErrorDetail] = Field(default_factory=list)
    error: str = "Request validation failed"


def format_validation_errors(errors: list[dict[str, Any]]) -> ValidationErrorResponse:
    """Convert Pydantic validation errors to ValidationErrorResponse.

    Args:
        errors: List of error dicts from ``RequestValidationError.errors()``

    Returns:
        ValidationErrorResponse ready for JSON serialization.
    """
    details = [
        ValidationErrorDetail(
            loc=[str(loc) for loc in error.get("loc", [])],
            msg=error.get("msg", ""),
            type=error.get("type", ""),
        )
        for error in errors
    ]
    return ValidationErrorResponse(details=details)
