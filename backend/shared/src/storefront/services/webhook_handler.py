"""Webhook handler for processing Stripe events (the push reconciliation path).

Provides business logic for handling webhook events separate from
HTTP routing concerns. This enables:
- Unit testing without HTTP overhead
- Reuse across different transport mechanisms
"""

import json
from collections.abc import Callable
from typing import Any

import pydantic
from botocore.exceptions import ClientError

from storefront.config import AppConfig
from storefront.models import (
    Err,
    NotFoundError,
    Ok,
    OrderStatus,
    PaymentError,
    PaymentIntentEvent,
    ServiceError,
    StripeConfig,
    UnhandledEvent,
    ValidationError,
    WebhookResult,
    decode_event,
)
from storefront.models.errors import ErrorCode
from storefront.utils.logging import get_logger, log_webhook_event

from .order_store import OrderStore
from .settings_service import SettingsService
from .status_mapping import order_status_for_intent
from .stripe_service import StripeService
from .transaction_store import TransactionStore
from .webhook_event_store import RecordOutcome, WebhookEventStore

logger = get_logger(__name__)


class WebhookHandler:
    """Handler for processing Stripe webhook events.

    Each delivery is verified, recorded once per (processor, event) pair,
    and dispatched on its type. Either both the transaction and order
    updates succeed, or the delivery is reported as failed so that the
    processor redelivers it.
    """

    def __init__(
        self,
        settings: SettingsService,
        transactions: TransactionStore,
        orders: OrderStore,
        events: WebhookEventStore,
        app_config: AppConfig,
        stripe_factory: Callable[[StripeConfig], StripeService] = StripeService,
    ) -> None:
        self.settings = settings
        self.transactions = transactions
        self.orders = orders
        self.events = events
        self.app_config = app_config
        self.stripe_factory = stripe_factory

    def handle(self, payload: bytes, signature: str | None) -> Ok[WebhookResult] | Err:
        """Handle one webhook delivery.

        Args:
            payload: Raw request body, exactly as received
            signature: Stripe-Signature header value

        Returns:
            Ok with processed, ignored or duplicate; Err otherwise.
        """
        try:
            return Ok(value=self._handle(payload, signature))
        except PaymentError as e:
            logger.error("Webhook delivery failed: %s: %s", e.code.value, e.message)
            return Err(error=e.to_service_error())
        except ClientError as e:
            logger.error("Store error during webhook handling: %s", e)
            return Err(error=ServiceError.from_code(ErrorCode.PERSISTENCE))
        except Exception:
            logger.exception("Unexpected error handling webhook")
            return Err(error=ServiceError.from_code(ErrorCode.INTERNAL))

    def _handle(self, payload: bytes, signature: str | None) -> WebhookResult:
        config = self.settings.resolve_stripe_config(require_webhook_secret=True)
        self.stripe_factory(config).construct_event(
            payload,
            signature,
            tolerance=self.app_config.webhook_tolerance_seconds,
        )

        try:
            event = decode_event(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Webhook body is not a valid event envelope",
                details={"errors": str(e.error_count())},
            ) from e

        log_webhook_event(logger, event.type, event.id, result="received")

        try:
            outcome = self.events.record_event(
                config.processor_id,
                event.id,
                event.type,
                json.loads(payload),
            )
        except PaymentError as e:
            # Audit trail failure does not block reconciliation
            logger.error("Could not record webhook event %s, continuing: %s", event.id, e)
            outcome = RecordOutcome.INSERTED

        if outcome is RecordOutcome.DUPLICATE:
            log_webhook_event(logger, event.type, event.id, result=WebhookResult.DUPLICATE.value)
            return WebhookResult.DUPLICATE

        try:
            transaction_id, order_id = self._dispatch(event)
        except PaymentError as e:
            log_webhook_event(logger, event.type, event.id, result="error", error=e.message)
            self._record_failure(config.processor_id, event.id, e.message)
            raise
        except Exception as e:
            self._record_failure(config.processor_id, event.id, str(e) or type(e).__name__)
            raise

        try:
            marked = self.events.mark_processed(config.processor_id, event.id, transaction_id)
            if not marked:
                logger.warning("Webhook event %s has no audit row to mark processed", event.id)
        except PaymentError as e:
            logger.error("Failed to mark webhook event %s processed: %s", event.id, e)

        result = WebhookResult.IGNORED if transaction_id is None else WebhookResult.PROCESSED
        log_webhook_event(
            logger,
            event.type,
            event.id,
            transaction_id=transaction_id,
            order_id=order_id,
            result=result.value,
        )
        return result

    def _dispatch(
        self, event: PaymentIntentEvent | UnhandledEvent
    ) -> tuple[str | None, str | None]:
        """Apply an event to local state.

        Returns:
            (transaction_id, order_id) touched, or (None, None) for unhandled types.

        Raises:
            NotFoundError: If no transaction references the event's intent.
            PersistenceError: If either required update fails.
        """
        if isinstance(event, UnhandledEvent):
            logger.info("Unhandled event type: %s", event.type)
            return None, None

        intent = event.data.object
        transaction = self.transactions.find_by_payment_intent(intent.id)
        if transaction is None:
            raise NotFoundError(f"No payment transaction for PaymentIntent {intent.id}")

        raw_status = event.implied_intent_status
        self.transactions.apply_intent_status(
            transaction.transaction_id,
            raw_status,
            _intent_object(event),
            failure_reason=event.failure_reason,
        )

        target = order_status_for_intent(raw_status)
        if target is OrderStatus.CANCELLED:
            captured = self.transactions.has_succeeded(transaction.order_id)
            self.orders.set_status(transaction.order_id, target, payment_captured=captured)
        elif target is not None:
            self.orders.set_status(transaction.order_id, target)

        return transaction.transaction_id, transaction.order_id

    def _record_failure(self, processor_id: str, event_id: str, error: str) -> None:
        try:
            self.events.record_failure(processor_id, event_id, error)
        except PaymentError as e:
            logger.error("Failed to record failure for webhook event %s: %s", event_id, e)


def _intent_object(event: PaymentIntentEvent) -> dict[str, Any]:
    """The intent as delivered, including fields the schema does not model."""
    return event.data.object.model_dump(mode="json", exclude_none=True)
