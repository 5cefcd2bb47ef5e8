"""Error codes and exception types for payment reconciliation.

Every failure the services can report maps to one ``ErrorCode``. Inside a
service the failure travels as a ``PaymentError`` subclass; at the service
boundary it is converted to a ``ServiceError`` and returned inside ``Err``.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes for payment operations."""

    VALIDATION = "ERR_VALIDATION"
    WEBHOOK_SIGNATURE = "ERR_WEBHOOK_SIGNATURE"
    CONFIGURATION = "ERR_CONFIGURATION"
    PROCESSOR = "ERR_PROCESSOR"
    NOT_FOUND = "ERR_NOT_FOUND"
    PERSISTENCE = "ERR_PERSISTENCE"
    INTERNAL = "ERR_INTERNAL"


# Default human-readable messages
ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION: "The request is missing required fields or is malformed",
    ErrorCode.WEBHOOK_SIGNATURE: "Invalid webhook signature",
    ErrorCode.CONFIGURATION: "Payment processor is not configured",
    ErrorCode.PROCESSOR: "The payment processor could not complete the request",
    ErrorCode.NOT_FOUND: "An expected payment record was not found",
    ErrorCode.PERSISTENCE: "Failed to save payment state",
    ErrorCode.INTERNAL: "An unexpected error occurred",
}

# Recovery hints for callers and operators
ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION: "Check the request fields and try again",
    ErrorCode.WEBHOOK_SIGNATURE: "Verify the webhook signing secret configuration",
    ErrorCode.CONFIGURATION: "Configure the processor credentials in settings",
    ErrorCode.PROCESSOR: "Try again or contact support",
    ErrorCode.NOT_FOUND: "Investigate data consistency for the referenced payment",
    ErrorCode.PERSISTENCE: "Try again later; the store may be unavailable",
    ErrorCode.INTERNAL: "Please try again later or contact support",
}


class ServiceError(BaseModel):
    """Serializable error carried by ``Err`` results and HTTP error bodies."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> "ServiceError":
        """Create a ServiceError from an error code.

        Args:
            code: The error code
            message: Specific message; defaults to the code's standard message
            details: Optional additional context about the error

        Returns:
            A ServiceError with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=message or ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class PaymentError(Exception):
    """Base exception for payment reconciliation failures."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or ERROR_MESSAGES[self.code]
        self.details = details
        super().__init__(self.message)

    def to_service_error(self) -> ServiceError:
        """Convert this exception to a ServiceError for results and responses."""
        return ServiceError.from_code(self.code, self.message, self.details)


class ValidationError(PaymentError):
    """Malformed or missing caller input. Never retried automatically."""

    code = ErrorCode.VALIDATION


class WebhookSignatureError(ValidationError):
    """Webhook delivery without a valid processor signature."""

    code = ErrorCode.WEBHOOK_SIGNATURE


class ConfigurationError(PaymentError):
    """Processor credentials or registry entries are missing."""

    code = ErrorCode.CONFIGURATION


class ProcessorError(PaymentError):
    """The payment processor rejected or could not service a call."""

    code = ErrorCode.PROCESSOR

    def __init__(
        self,
        message: Optional[str] = None,
        processor_error_code: Optional[str] = None,
    ) -> None:
        details = {"processor_error_code": processor_error_code} if processor_error_code else None
        super().__init__(message, details)
        self.processor_error_code = processor_error_code


class NotFoundError(PaymentError):
    """An expected local record is missing (data-consistency bug)."""

    code = ErrorCode.NOT_FOUND


class PersistenceError(PaymentError):
    """A critical write to the local store failed."""

    code = ErrorCode.PERSISTENCE
