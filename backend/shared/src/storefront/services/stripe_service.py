"""Stripe payment service for PaymentIntents and webhook verification.

Provides integration with Stripe using the v8+ StripeClient pattern.
Credentials come from a per-request ``StripeConfig``.
"""

import json
from typing import Any

import stripe
from stripe import StripeClient

from storefront.models.errors import (
    ConfigurationError,
    ProcessorError,
    ValidationError,
    WebhookSignatureError,
)
from storefront.models.settings import StripeConfig
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def intent_payload(intent: Any) -> dict[str, Any]:
    """Render a Stripe object as a plain dict.

    Newer stripe releases no longer make ``StripeObject`` a dict, but every
    release renders it as JSON through ``str()``.
    """
    payload: dict[str, Any] = json.loads(str(intent))
    return payload


class StripeService:
    """Service for Stripe payment operations.

    Handles:
    - PaymentIntent creation
    - PaymentIntent retrieval (server-side verification)
    - Webhook signature validation

    Usage:
        stripe_svc = StripeService(config)
        intent = stripe_svc.create_payment_intent(
            amount_minor=4999,
            currency="USD",
            metadata={"order_id": "ord_123", "user_id": "usr_456"},
        )
    """

    def __init__(self, config: StripeConfig) -> None:
        """Initialize Stripe service.

        Args:
            config: Credentials resolved for the current request.
        """
        self._config = config
        self._client: StripeClient | None = None

    @property
    def test_mode(self) -> bool:
        return self._config.test_mode

    def _get_client(self) -> StripeClient:
        """Get or create the Stripe client (lazy initialization)."""
        if self._client is None:
            self._client = StripeClient(self._config.secret_key.get_secret_value())
            logger.info("Stripe client initialized (test_mode=%s)", self._config.test_mode)
        return self._client

    def create_payment_intent(
        self,
        *,
        amount_minor: int,
        currency: str,
        metadata: dict[str, str],
        payment_method_type: str | None = None,
        idempotency_key: str | None = None,
    ) -> Any:
        """Create a Stripe PaymentIntent.

        Args:
            amount_minor: Amount in the currency's minor units.
            currency: Uppercase ISO currency code.
            metadata: Cross-reference metadata (order and user IDs).
            payment_method_type: Restrict to one payment method type; when
                absent, automatic payment methods are enabled.
            idempotency_key: Optional key so a retried request reuses the intent.

        Returns:
            The created PaymentIntent.

        Raises:
            ProcessorError: If Stripe rejects the request.
        """
        client = self._get_client()

        params: dict[str, Any] = {
            "amount": amount_minor,
            "currency": currency,
            "metadata": metadata,
        }
        # Stripe rejects payment_method_types together with automatic_payment_methods
        if payment_method_type:
            params["payment_method_types"] = [payment_method_type]
        else:
            params["automatic_payment_methods"] = {"enabled": True}

        options: dict[str, Any] = {}
        if idempotency_key:
            options["idempotency_key"] = idempotency_key

        try:
            logger.info(
                "Creating Stripe PaymentIntent for order %s, amount %d %s",
                metadata.get("order_id"),
                amount_minor,
                currency,
            )
            intent = client.payment_intents.create(params=params, options=options)
            logger.info("PaymentIntent created: %s", intent.id)
            return intent

        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent creation failed: %s (code: %s)",
                str(e),
                error_code,
            )
            raise ProcessorError(
                f"Error creating Stripe payment intent: {e.user_message or e}",
                processor_error_code=error_code,
            ) from e

    def retrieve_payment_intent(self, payment_intent_id: str) -> Any:
        """Fetch a PaymentIntent directly from Stripe.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx).

        Returns:
            The PaymentIntent as Stripe reports it now.

        Raises:
            ProcessorError: If the retrieval fails (network, auth, unknown ID).
        """
        client = self._get_client()
        try:
            return client.payment_intents.retrieve(payment_intent_id)
        except stripe.StripeError as e:
            error_code = getattr(e, "code", None)
            logger.error(
                "Stripe PaymentIntent retrieval failed for %s: %s (code: %s)",
                payment_intent_id,
                str(e),
                error_code,
            )
            raise ProcessorError(
                f"Failed to retrieve payment intent: {e.user_message or e}",
                processor_error_code=error_code,
            ) from e

    def construct_event(self, payload: bytes, signature: str | None, tolerance: int) -> None:
        """Verify a webhook signature against the configured signing secret.

        Args:
            payload: Raw request body bytes.
            signature: Stripe-Signature header value.
            tolerance: Maximum age of the signed timestamp in seconds.

        Raises:
            ConfigurationError: If no webhook secret is configured.
            WebhookSignatureError: If the header is missing or invalid.
            ValidationError: If the verified body is not JSON.
        """
        if self._config.webhook_secret is None:
            raise ConfigurationError("Stripe webhook secret not found in settings")
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            stripe.Webhook.construct_event(
                payload,
                signature,
                self._config.webhook_secret.get_secret_value(),
                tolerance=tolerance,
            )
        except stripe.SignatureVerificationError as e:
            logger.warning("Invalid webhook signature: %s", str(e))
            raise WebhookSignatureError("Invalid webhook signature") from e
        except ValueError as e:
            raise ValidationError("Webhook body is not valid JSON") from e
