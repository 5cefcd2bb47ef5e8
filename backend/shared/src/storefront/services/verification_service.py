"""Server-side verification of a PaymentIntent (the pull reconciliation path).

The client's view of a confirmation is never trusted: the intent is
re-fetched from the processor and local state is derived from that.
"""

from collections.abc import Callable

from botocore.exceptions import ClientError

from storefront.models import (
    Err,
    Ok,
    OrderStatus,
    PaymentError,
    ServiceError,
    StripeConfig,
    ValidationError,
    VerificationOutcome,
    VerifyIntentRequest,
)
from storefront.models.errors import ErrorCode
from storefront.utils.logging import get_logger, log_payment_operation

from .order_store import OrderStore
from .settings_service import SettingsService
from .status_mapping import (
    is_provisional_success,
    order_status_for_intent,
    verification_message,
)
from .stripe_service import StripeService, intent_payload
from .transaction_store import TransactionStore

logger = get_logger(__name__)


class VerificationService:
    """Re-fetches an intent and reconciles the transaction and order."""

    def __init__(
        self,
        settings: SettingsService,
        transactions: TransactionStore,
        orders: OrderStore,
        stripe_factory: Callable[[StripeConfig], StripeService] = StripeService,
    ) -> None:
        self.settings = settings
        self.transactions = transactions
        self.orders = orders
        self.stripe_factory = stripe_factory

    def verify(self, request: VerifyIntentRequest) -> Ok[VerificationOutcome] | Err:
        """Verify a PaymentIntent with the processor and reconcile local state.

        The transaction update is best-effort; the order update is not.

        Returns:
            Ok with the processor status and success flag, or Err with
            ERR_VALIDATION, ERR_CONFIGURATION, ERR_PROCESSOR, ERR_NOT_FOUND
            or ERR_PERSISTENCE.
        """
        try:
            return Ok(value=self._verify(request))
        except PaymentError as e:
            log_payment_operation(
                logger,
                "verify_intent",
                order_id=request.order_id,
                payment_intent_id=request.payment_intent_id,
                error=f"{e.code.value}: {e.message}",
            )
            return Err(error=e.to_service_error())
        except ClientError as e:
            logger.error("Store error during verification: %s", e)
            return Err(error=ServiceError.from_code(ErrorCode.PERSISTENCE))
        except Exception:
            logger.exception("Unexpected error verifying payment intent")
            return Err(error=ServiceError.from_code(ErrorCode.INTERNAL))

    def _verify(self, request: VerifyIntentRequest) -> VerificationOutcome:
        payment_intent_id = (request.payment_intent_id or "").strip()
        order_id = (request.order_id or "").strip()
        if not payment_intent_id or not order_id:
            raise ValidationError("Missing required fields: paymentIntentId and orderId are required")

        config = self.settings.resolve_stripe_config()
        intent = self.stripe_factory(config).retrieve_payment_intent(payment_intent_id)

        payload = intent_payload(intent)
        intent_order_id = (payload.get("metadata") or {}).get("order_id")
        if intent_order_id and intent_order_id != order_id:
            raise ValidationError(
                f"PaymentIntent {payment_intent_id} does not belong to order {order_id}"
            )

        raw_status: str | None = payload.get("status")
        last_error = payload.get("last_payment_error") or {}
        failure_reason = last_error.get("message")

        if request.transaction_id:
            try:
                self.transactions.apply_intent_status(
                    request.transaction_id,
                    raw_status,
                    payload,
                    failure_reason=failure_reason,
                )
            except (PaymentError, ClientError) as e:
                # Audit record only; the order update below still decides the outcome
                logger.error(
                    "Failed to update transaction %s during verification: %s",
                    request.transaction_id,
                    e,
                )
        else:
            logger.info("No transaction ID supplied; skipping transaction update")

        target = order_status_for_intent(raw_status)
        if target is OrderStatus.CANCELLED:
            captured = self.transactions.has_succeeded(order_id)
            self.orders.set_status(order_id, target, payment_captured=captured)
        elif target is not None:
            self.orders.set_status(order_id, target)

        outcome = VerificationOutcome(
            status=raw_status or "unknown",
            success=is_provisional_success(raw_status),
            message=verification_message(raw_status),
            order_id=order_id,
        )
        log_payment_operation(
            logger,
            "verify_intent",
            order_id=order_id,
            transaction_id=request.transaction_id,
            payment_intent_id=payment_intent_id,
            status=outcome.status,
            success=outcome.success,
        )
        return outcome
