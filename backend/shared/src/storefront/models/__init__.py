"""Pydantic models for storefront payment reconciliation."""

from .enums import (
    OrderStatus,
    PaymentIntentStatus,
    TransactionStatus,
    WebhookEventType,
    WebhookResult,
)
from .errors import (
    ERROR_MESSAGES,
    ERROR_RECOVERY,
    ConfigurationError,
    ErrorCode,
    NotFoundError,
    PaymentError,
    PersistenceError,
    ProcessorError,
    ServiceError,
    ValidationError,
    WebhookSignatureError,
)
from .order import Order
from .payment import (
    CreateIntentRequest,
    IntentCreated,
    PaymentTransaction,
    VerificationOutcome,
    VerifyIntentRequest,
)
from .result import Err, Ok
from .settings import StripeConfig
from .webhook import (
    PaymentIntentEvent,
    PaymentIntentObject,
    PaymentIntentPaymentFailedEvent,
    PaymentIntentSucceededEvent,
    UnhandledEvent,
    WebhookEvent,
    decode_event,
)

__all__ = [
    # Enums
    "OrderStatus",
    "PaymentIntentStatus",
    "TransactionStatus",
    "WebhookEventType",
    "WebhookResult",
    # Errors
    "ERROR_MESSAGES",
    "ERROR_RECOVERY",
    "ConfigurationError",
    "ErrorCode",
    "NotFoundError",
    "PaymentError",
    "PersistenceError",
    "ProcessorError",
    "ServiceError",
    "ValidationError",
    "WebhookSignatureError",
    # Results
    "Err",
    "Ok",
    # Records
    "Order",
    "PaymentTransaction",
    "WebhookEvent",
    # Service inputs/outputs
    "CreateIntentRequest",
    "IntentCreated",
    "VerificationOutcome",
    "VerifyIntentRequest",
    "StripeConfig",
    # Webhook envelope
    "PaymentIntentEvent",
    "PaymentIntentObject",
    "PaymentIntentPaymentFailedEvent",
    "PaymentIntentSucceededEvent",
    "UnhandledEvent",
    "decode_event",
]
