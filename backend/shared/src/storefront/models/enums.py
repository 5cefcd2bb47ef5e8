"""Enumeration types for storefront payment data models."""

from enum import Enum


class OrderStatus(str, Enum):
    """Fulfilment status of an order.

    Reconciliation only moves orders between pending, confirmed and
    cancelled; shipped and delivered belong to fulfilment.
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    """Status of a local payment transaction."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentIntentStatus(str, Enum):
    """Lifecycle statuses reported by Stripe for a PaymentIntent."""

    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    REQUIRES_CAPTURE = "requires_capture"
    CANCELED = "canceled"
    SUCCEEDED = "succeeded"


class WebhookEventType(str, Enum):
    """Webhook event types that trigger reconciliation."""

    PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
    PAYMENT_INTENT_PAYMENT_FAILED = "payment_intent.payment_failed"


class WebhookResult(str, Enum):
    """Outcome of handling one webhook delivery."""

    PROCESSED = "processed"
    IGNORED = "ignored"
    DUPLICATE = "duplicate"
