"""Webhook endpoints for external service integrations.

Provides endpoints for:
- Stripe webhook events (payment_intent.succeeded, payment_intent.payment_failed)

These endpoints do NOT require a bearer credential as they receive
signed payloads from Stripe.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_webhook_handler
from api.exceptions import error_response
from api.models.common import ErrorResponse
from api.models.webhooks import WebhookResponse
from storefront.models import Err, ErrorCode, ServiceError
from storefront.services.webhook_handler import WebhookHandler
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post(
    "/webhooks/stripe",
    summary="Receive Stripe webhook events",
    description="""
Endpoint for Stripe webhook events. Handles:
- payment_intent.succeeded: Marks the transaction succeeded and confirms the order
- payment_intent.payment_failed: Marks the transaction failed and cancels the order

Other event types are stored and acknowledged without changes.

**No bearer credential** - the body is verified with the Stripe webhook secret.

**Idempotent**: Duplicate events (same event id) return 200 with result 'duplicate'.
Any failure returns 500 so that Stripe redelivers the event.
""",
    response_model=WebhookResponse,
    responses={
        200: {"description": "Event received and processed (or acknowledged)"},
        400: {"description": "Invalid signature, missing header or malformed event", "model": ErrorResponse},
        500: {"description": "Processing failed; Stripe will retry", "model": ErrorResponse},
    },
)
async def handle_stripe_webhook(
    request: Request,
    handler: WebhookHandler = Depends(get_webhook_handler),
) -> WebhookResponse | JSONResponse:
    """Handle incoming Stripe webhook events."""
    signature = request.headers.get("Stripe-Signature")
    if not signature:
        logger.warning("Webhook request missing Stripe-Signature header")
        return error_response(
            ServiceError.from_code(
                ErrorCode.WEBHOOK_SIGNATURE,
                "Missing Stripe-Signature header",
            )
        )

    # Raw body is required for signature verification
    payload = await request.body()

    result = await run_in_threadpool(handler.handle, payload, signature)
    if isinstance(result, Err):
        return error_response(result.error)
    return WebhookResponse(result=result.value)
