"""Payment endpoints for the checkout flow.

Provides REST endpoints for:
- Creating a PaymentIntent for an order (bearer credential required)
- Verifying a PaymentIntent after client-side confirmation

The client confirms the intent with Stripe's client library using the
returned client secret, then calls verify. A payment is only treated as
successful once verify reports it.
"""

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from api.dependencies import get_intent_service, get_verification_service
from api.exceptions import error_response
from api.models.common import ErrorResponse, ValidationErrorResponse
from api.models.payments import (
    CreatePaymentIntentBody,
    PaymentIntentResponse,
    VerifyPaymentBody,
    VerifyPaymentResponse,
)
from api.security import require_bearer
from storefront.models import Err
from storefront.services.intent_service import PaymentIntentService
from storefront.services.verification_service import VerificationService

router = APIRouter(tags=["payments"])


@router.post(
    "/payments/intents",
    summary="Create payment intent",
    description="""
Create a Stripe PaymentIntent for an order and record a local transaction.

**Requires a bearer credential.**

**Notes:**
- Amount is in major units (49.99) and converted to minor units
- Currency defaults to the store's default currency
- An `Idempotency-Key` header is forwarded to Stripe so a retried
  request returns the same intent
- `isTestMode` tells the client to show test-mode cues
""",
    response_model=PaymentIntentResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        401: {"description": "Bearer credential required"},
        500: {"description": "Processor, configuration or store error", "model": ErrorResponse},
    },
)
def create_payment_intent(
    body: CreatePaymentIntentBody,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    _token: str = Depends(require_bearer),
    service: PaymentIntentService = Depends(get_intent_service),
) -> PaymentIntentResponse | JSONResponse:
    result = service.create_intent(body.to_request(idempotency_key))
    if isinstance(result, Err):
        return error_response(result.error)
    return PaymentIntentResponse.from_created(result.value)


@router.post(
    "/payments/verify",
    summary="Verify payment intent",
    description="""
Re-fetch a PaymentIntent from Stripe and reconcile the order.

The status reported by the client is never trusted; Stripe is asked
directly. `success` is true for succeeded, processing and
requires_capture.
""",
    response_model=VerifyPaymentResponse,
    responses={
        400: {"description": "Missing paymentIntentId or orderId", "model": ValidationErrorResponse},
        500: {"description": "Processor or store error", "model": ErrorResponse},
    },
)
def verify_payment(
    body: VerifyPaymentBody,
    service: VerificationService = Depends(get_verification_service),
) -> VerifyPaymentResponse | JSONResponse:
    result = service.verify(body.to_request())
    if isinstance(result, Err):
        return error_response(result.error)
    return VerifyPaymentResponse.from_outcome(result.value)
