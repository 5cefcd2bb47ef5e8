"""Payment transaction model and service inputs/outputs."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import TransactionStatus


class PaymentTransaction(BaseModel):
    """One attempt to collect payment for an order.

    Created by intent initiation; mutated only by the reconciliation
    services; never deleted.
    """

    model_config = ConfigDict(strict=True)

    transaction_id: str = Field(..., description="Unique transaction ID")
    order_id: str = Field(..., description="Reference to Order")
    processor_id: str = Field(..., description="Reference to the payment processor registry row")
    processor_payment_intent_id: str | None = Field(
        default=None,
        description="Stripe PaymentIntent ID (pi_xxx)",
        examples=["pi_3ABC123DEF456"],
    )
    amount: Decimal = Field(..., ge=0, description="Amount in major units")
    amount_minor: int | None = Field(default=None, ge=0, description="Amount sent to the processor")
    currency: str = Field(default="USD", description="ISO currency code")
    status: TransactionStatus = Field(..., description="Transaction status")
    failure_reason: str | None = None
    payment_method: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    processor_response: dict[str, Any] | None = Field(
        default=None,
        description="Raw processor payload retained for audit",
    )
    version: int = Field(default=0, ge=0)
    created_at: datetime
    updated_at: datetime | None = None
    processed_at: datetime | None = None
    failed_at: datetime | None = None


class CreateIntentRequest(BaseModel):
    """Input to intent initiation.

    Fields are optional at the type level so that presence is checked by
    the service and reported as a ValidationError.
    """

    order_id: str | None = None
    user_id: str | None = None
    amount: Decimal | None = None
    currency: str | None = None
    payment_method_type: str | None = None
    idempotency_key: str | None = None


class IntentCreated(BaseModel):
    """Client-usable credentials for confirming a new PaymentIntent."""

    model_config = ConfigDict(frozen=True)

    client_secret: str
    payment_intent_id: str
    transaction_id: str
    is_test_mode: bool


class VerifyIntentRequest(BaseModel):
    """Input to server-side verification."""

    payment_intent_id: str | None = None
    transaction_id: str | None = None
    order_id: str | None = None


class VerificationOutcome(BaseModel):
    """Result of re-fetching and reconciling one PaymentIntent.

    ``success`` is true for succeeded, processing and requires_capture;
    processing counts as a provisional success.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    success: bool
    message: str
    order_id: str
