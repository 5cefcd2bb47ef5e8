"""Payment intent initiation.

Creates the processor-side intent first and records the local transaction
only after the processor accepted it, so a failed create never leaves a
pending transaction without an intent.
"""

import datetime as dt
import uuid
from collections.abc import Callable
from decimal import Decimal

from botocore.exceptions import ClientError

from storefront.config import AppConfig
from storefront.models import (
    CreateIntentRequest,
    Err,
    IntentCreated,
    Ok,
    PaymentError,
    PaymentTransaction,
    ProcessorError,
    ServiceError,
    StripeConfig,
    TransactionStatus,
    ValidationError,
)
from storefront.models.errors import ErrorCode
from storefront.utils.logging import get_logger, log_payment_operation

from .settings_service import SettingsService
from .status_mapping import normalize_currency, to_minor_units
from .stripe_service import StripeService, intent_payload
from .transaction_store import TransactionStore

logger = get_logger(__name__)


class PaymentIntentService:
    """Creates PaymentIntents and their local transaction records."""

    def __init__(
        self,
        settings: SettingsService,
        transactions: TransactionStore,
        app_config: AppConfig,
        stripe_factory: Callable[[StripeConfig], StripeService] = StripeService,
    ) -> None:
        """Initialize intent service.

        Args:
            settings: Resolves processor credentials for each call
            transactions: Transaction store
            app_config: Process configuration (default currency)
            stripe_factory: Builds the processor client from resolved credentials
        """
        self.settings = settings
        self.transactions = transactions
        self.app_config = app_config
        self.stripe_factory = stripe_factory

    def create_intent(self, request: CreateIntentRequest) -> Ok[IntentCreated] | Err:
        """Create a PaymentIntent for an order.

        Returns:
            Ok with the client secret and identifiers, or Err with
            ERR_VALIDATION, ERR_CONFIGURATION, ERR_PROCESSOR or ERR_PERSISTENCE.
        """
        try:
            return Ok(value=self._create_intent(request))
        except PaymentError as e:
            log_payment_operation(
                logger,
                "create_intent",
                order_id=request.order_id,
                error=f"{e.code.value}: {e.message}",
            )
            return Err(error=e.to_service_error())
        except ClientError as e:
            logger.error("Store error during intent creation: %s", e)
            return Err(error=ServiceError.from_code(ErrorCode.PERSISTENCE))
        except Exception:
            logger.exception("Unexpected error creating payment intent")
            return Err(error=ServiceError.from_code(ErrorCode.INTERNAL))

    def _create_intent(self, request: CreateIntentRequest) -> IntentCreated:
        order_id, user_id, amount, currency = self._validate(request)

        config = self.settings.resolve_stripe_config()
        amount_minor = to_minor_units(amount, currency)
        if amount_minor <= 0:
            raise ValidationError(f"Amount {amount} {currency} is below the smallest chargeable unit")

        stripe_svc = self.stripe_factory(config)
        intent = stripe_svc.create_payment_intent(
            amount_minor=amount_minor,
            currency=currency,
            metadata={"order_id": order_id, "user_id": user_id},
            payment_method_type=request.payment_method_type,
            idempotency_key=request.idempotency_key,
        )

        payload = intent_payload(intent)
        client_secret = payload.get("client_secret")
        if not client_secret:
            raise ProcessorError(f"PaymentIntent {intent.id} has no client secret")

        now = dt.datetime.now(dt.UTC)
        transaction = PaymentTransaction(
            transaction_id=str(uuid.uuid4()),
            order_id=order_id,
            processor_id=config.processor_id,
            processor_payment_intent_id=intent.id,
            amount=amount,
            amount_minor=amount_minor,
            currency=currency,
            status=TransactionStatus.PROCESSING,
            payment_method={"type": request.payment_method_type or "automatic"},
            metadata={"is_test_mode": config.test_mode, "user_id": user_id},
            processor_response=payload,
            created_at=now,
            updated_at=now,
        )
        try:
            self.transactions.create(transaction)
        except PaymentError:
            # The processor intent exists but nothing references it locally
            logger.error("PaymentIntent %s created but its transaction was not recorded", intent.id)
            raise

        log_payment_operation(
            logger,
            "create_intent",
            order_id=order_id,
            transaction_id=transaction.transaction_id,
            payment_intent_id=intent.id,
            amount_minor=amount_minor,
            status=transaction.status.value,
            test_mode=config.test_mode,
        )

        return IntentCreated(
            client_secret=client_secret,
            payment_intent_id=intent.id,
            transaction_id=transaction.transaction_id,
            is_test_mode=config.test_mode,
        )

    def _validate(self, request: CreateIntentRequest) -> tuple[str, str, Decimal, str]:
        """Check required fields and normalize them.

        Raises:
            ValidationError: If a required field is missing or invalid.
        """
        missing = []
        order_id = (request.order_id or "").strip()
        user_id = (request.user_id or "").strip()
        if request.amount is None:
            missing.append("amount")
        if request.currency is not None and not request.currency.strip():
            missing.append("currency")
        if not order_id:
            missing.append("orderId")
        if not user_id:
            missing.append("userId")
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": ",".join(missing)},
            )

        amount = request.amount
        if amount is None or not amount.is_finite() or amount <= 0:
            raise ValidationError("Amount must be a positive number")

        currency = normalize_currency(request.currency or self.app_config.default_currency)
        if len(currency) != 3 or not currency.isalpha():
            raise ValidationError(f"Invalid currency code: {currency}")

        return order_id, user_id, amount, currency
