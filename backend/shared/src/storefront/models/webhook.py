"""Webhook event models: the stored audit row and the decoded envelope.

The processor's envelope is decoded at the boundary into a tagged union
keyed on ``type``. Known payment-intent events get typed variants; every
other type falls into ``UnhandledEvent`` so new processor event kinds are
accepted without a code change.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
)

from .enums import PaymentIntentStatus, WebhookEventType


class WebhookEvent(BaseModel):
    """Log of a received webhook event.

    Used for:
    - Idempotency: (processor_id, event_id) is unique
    - Auditing: every delivery's payload is kept
    - Debugging: attempts and the last error are recorded
    """

    model_config = ConfigDict(strict=True)

    webhook_event_id: str = Field(..., description="Local identifier of the audit row")
    processor_id: str = Field(..., description="Registry ID of the payment processor")
    event_id: str = Field(
        ...,
        description="Processor event ID (evt_xxx)",
        examples=["evt_1ABC123DEF456"],
    )
    event_type: str = Field(
        ...,
        description="Processor event type",
        examples=["payment_intent.succeeded"],
    )
    event_data: dict[str, Any] = Field(..., description="Raw event payload")
    processed: bool = False
    processed_at: datetime | None = None
    processing_attempts: int = Field(default=1, ge=0)
    last_error: str | None = None
    failed_at: datetime | None = None
    payment_transaction_id: str | None = None
    created_at: datetime


# === Envelope ===


class LastPaymentError(BaseModel):
    """``last_payment_error`` on a PaymentIntent."""

    model_config = ConfigDict(extra="allow")

    message: str | None = None
    code: str | None = None
    decline_code: str | None = None


class PaymentIntentObject(BaseModel):
    """The PaymentIntent embedded in ``data.object``."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    status: str | None = None
    amount: int | None = None
    currency: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    last_payment_error: LastPaymentError | None = None


class PaymentIntentData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: PaymentIntentObject


class EventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    object: dict[str, Any] = Field(default_factory=dict)


class _EventBase(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    created: int | None = None
    livemode: bool | None = None


class PaymentIntentSucceededEvent(_EventBase):
    """``payment_intent.succeeded``: money has been captured."""

    type: Literal["payment_intent.succeeded"]
    data: PaymentIntentData

    @property
    def implied_intent_status(self) -> str:
        return PaymentIntentStatus.SUCCEEDED.value

    @property
    def failure_reason(self) -> str | None:
        return None


class PaymentIntentPaymentFailedEvent(_EventBase):
    """``payment_intent.payment_failed``: the attempt was declined."""

    type: Literal["payment_intent.payment_failed"]
    data: PaymentIntentData

    @property
    def implied_intent_status(self) -> str:
        # Stripe returns a failed intent to requires_payment_method
        return PaymentIntentStatus.REQUIRES_PAYMENT_METHOD.value

    @property
    def failure_reason(self) -> str:
        error = self.data.object.last_payment_error
        if error and error.message:
            return error.message
        return "Payment failed"


class UnhandledEvent(_EventBase):
    """Any event type without a reconciliation rule."""

    data: EventData = Field(default_factory=EventData)


_HANDLED_TYPES = {t.value for t in WebhookEventType}


def _event_tag(value: Any) -> str:
    if isinstance(value, dict):
        event_type = value.get("type")
    else:
        event_type = getattr(value, "type", None)
    return event_type if event_type in _HANDLED_TYPES else "unhandled"


ProcessorEvent = Annotated[
    Union[
        Annotated[PaymentIntentSucceededEvent, Tag(WebhookEventType.PAYMENT_INTENT_SUCCEEDED.value)],
        Annotated[PaymentIntentPaymentFailedEvent, Tag(WebhookEventType.PAYMENT_INTENT_PAYMENT_FAILED.value)],
        Annotated[UnhandledEvent, Tag("unhandled")],
    ],
    Discriminator(_event_tag),
]

PaymentIntentEvent = PaymentIntentSucceededEvent | PaymentIntentPaymentFailedEvent

_event_adapter: TypeAdapter[Any] = TypeAdapter(ProcessorEvent)


def decode_event(payload: bytes | str) -> PaymentIntentEvent | UnhandledEvent:
    """Decode a raw webhook body into a typed event.

    Raises:
        pydantic.ValidationError: If the body is not JSON or lacks required fields.
    """
    return _event_adapter.validate_json(payload)
