"""API models for payment endpoints.

Bodies and responses use camelCase field names on the wire and map onto
the service inputs/outputs in ``storefront.models.payment``.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storefront.models import (
    CreateIntentRequest,
    IntentCreated,
    VerificationOutcome,
    VerifyIntentRequest,
)


class CamelModel(BaseModel):
    """Base for wire models with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreatePaymentIntentBody(CamelModel):
    """Request to create a PaymentIntent for an order.

    Required fields are checked by the intent service so that a missing
    field yields the standard ERR_VALIDATION response.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "amount": 49.99,
                    "currency": "usd",
                    "orderId": "ord_123",
                    "userId": "usr_456",
                    "paymentMethodType": "card",
                }
            ]
        },
    )

    amount: Decimal | None = Field(default=None, description="Amount in major units")
    currency: str | None = Field(default=None, description="ISO currency code")
    order_id: str | None = None
    user_id: str | None = None
    payment_method_type: str | None = Field(
        default=None,
        description="Restrict the intent to one payment method type",
        examples=["card"],
    )

    def to_request(self, idempotency_key: str | None = None) -> CreateIntentRequest:
        return CreateIntentRequest(
            order_id=self.order_id,
            user_id=self.user_id,
            amount=self.amount,
            currency=self.currency,
            payment_method_type=self.payment_method_type,
            idempotency_key=idempotency_key,
        )


class PaymentIntentResponse(CamelModel):
    """Credentials the client uses to confirm the PaymentIntent."""

    client_secret: str
    payment_intent_id: str = Field(..., examples=["pi_3ABC123DEF456"])
    transaction_id: str
    is_test_mode: bool

    @classmethod
    def from_created(cls, created: IntentCreated) -> "PaymentIntentResponse":
        return cls(
            client_secret=created.client_secret,
            payment_intent_id=created.payment_intent_id,
            transaction_id=created.transaction_id,
            is_test_mode=created.is_test_mode,
        )


class VerifyPaymentBody(CamelModel):
    """Request to verify a PaymentIntent after client-side confirmation."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "paymentIntentId": "pi_3ABC123DEF456",
                    "transactionId": "b9f6c1d2-6a0e-4d7e-9a57-1f2e3d4c5b6a",
                    "orderId": "ord_123",
                }
            ]
        },
    )

    payment_intent_id: str | None = None
    transaction_id: str | None = None
    order_id: str | None = None

    def to_request(self) -> VerifyIntentRequest:
        return VerifyIntentRequest(
            payment_intent_id=self.payment_intent_id,
            transaction_id=self.transaction_id,
            order_id=self.order_id,
        )


class VerifyPaymentResponse(CamelModel):
    """Processor status as verified by the server."""

    status: str = Field(..., examples=["succeeded"])
    success: bool
    message: str = Field(..., examples=["Payment successful"])
    order_id: str

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome) -> "VerifyPaymentResponse":
        return cls(
            status=outcome.status,
            success=outcome.success,
            message=outcome.message,
            order_id=outcome.order_id,
        )
