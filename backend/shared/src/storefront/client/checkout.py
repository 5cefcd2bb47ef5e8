"""HTTP client for the checkout side of the payment flow.

Wraps the two caller-facing endpoints: create an intent, then (after the
processor-side confirmation finished, in-flow or via redirect) verify it.
A payment is reported as successful only when the server says so.
"""

from decimal import Decimal
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from storefront.utils.logging import get_correlation_id, get_logger

logger = get_logger(__name__)

SUPPORT_MESSAGE = (
    "We could not confirm your payment. Please contact support with your order number."
)


class CheckoutError(Exception):
    """Checkout could not proceed; ``message`` is safe to show the user."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.detail = detail


class _ApiResponse(BaseModel):
    """Response body parsed from the camelCase JSON the API emits."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class PaymentIntentCredentials(_ApiResponse):
    """What the client needs to confirm an intent with the processor."""

    client_secret: str
    payment_intent_id: str
    transaction_id: str
    is_test_mode: bool = False


class VerificationResult(_ApiResponse):
    status: str = "unknown"
    success: bool = False
    message: str = ""
    order_id: str


def intent_id_from_return_url(return_url: str) -> str | None:
    """Extract the intent ID Stripe appends to a redirect return URL."""
    values = parse_qs(urlparse(return_url).query).get("payment_intent")
    return values[0] if values else None


class CheckoutClient:
    """Synchronous client for the storefront payment API.

    Usage:
        with CheckoutClient("https://shop.example.com/api") as checkout:
            creds = checkout.create_payment_intent(
                Decimal("49.99"), "ord_123", "usr_456", access_token=token
            )
            # ... confirm with Stripe.js using creds.client_secret ...
            result = checkout.complete_checkout(
                "ord_123",
                payment_intent_id=creds.payment_intent_id,
                transaction_id=creds.transaction_id,
            )
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    def __enter__(self) -> "CheckoutClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _headers(
        self,
        access_token: str | None = None,
        idempotency_key: str | None = None,
    ) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Correlation-ID"] = correlation_id
        return headers

    def _post(self, path: str, body: dict[str, Any], headers: dict[str, str]) -> httpx.Response:
        try:
            return self._client.post(path, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Request to %s failed: %s", path, exc)
            raise CheckoutError(SUPPORT_MESSAGE, detail=str(exc)) from exc

    @staticmethod
    def _error_from(response: httpx.Response, message: str) -> CheckoutError:
        error_code = None
        detail = response.text.strip()
        try:
            body = response.json()
            if isinstance(body, dict):
                error_code = body.get("error_code")
                detail = str(body.get("message") or body.get("error") or body.get("detail") or detail)
        except ValueError:
            pass
        return CheckoutError(
            message,
            status_code=response.status_code,
            error_code=error_code,
            detail=detail[:400],
        )

    def create_payment_intent(
        self,
        amount: Decimal,
        order_id: str,
        user_id: str,
        access_token: str,
        currency: str = "USD",
        payment_method_type: str | None = "card",
        idempotency_key: str | None = None,
    ) -> PaymentIntentCredentials:
        """Create a PaymentIntent for an order.

        Raises:
            CheckoutError: On any non-200 response or a response without a
                client secret.
        """
        body: dict[str, Any] = {
            "amount": float(amount),
            "currency": currency,
            "orderId": order_id,
            "userId": user_id,
        }
        if payment_method_type:
            body["paymentMethodType"] = payment_method_type

        response = self._post(
            "/payments/intents",
            body,
            self._headers(access_token, idempotency_key),
        )
        if response.status_code != 200:
            raise self._error_from(response, "Could not start payment. Please try again.")

        data = response.json()
        if not data.get("clientSecret"):
            raise CheckoutError(
                "Could not start payment. Please try again.",
                status_code=response.status_code,
                detail="Response did not include a client secret",
            )
        try:
            return PaymentIntentCredentials.model_validate(data)
        except ValidationError as e:
            raise CheckoutError(
                "Could not start payment. Please try again.",
                status_code=response.status_code,
                detail=f"Malformed intent response: {e.error_count()} invalid field(s)",
            ) from e

    def verify_payment(
        self,
        payment_intent_id: str,
        transaction_id: str | None,
        order_id: str,
        access_token: str | None = None,
    ) -> VerificationResult:
        """Ask the server to verify an intent with the processor.

        Raises:
            CheckoutError: With the support message whenever the server does
                not report success, whatever the client-side confirmation said.
        """
        body: dict[str, Any] = {"paymentIntentId": payment_intent_id, "orderId": order_id}
        if transaction_id:
            body["transactionId"] = transaction_id

        response = self._post("/payments/verify", body, self._headers(access_token))
        if response.status_code != 200:
            raise self._error_from(response, SUPPORT_MESSAGE)

        data = response.json()
        try:
            result = VerificationResult.model_validate({"orderId": order_id, **data})
        except ValidationError as e:
            raise CheckoutError(
                SUPPORT_MESSAGE,
                status_code=response.status_code,
                detail="Malformed verification response",
            ) from e
        if not result.success:
            logger.warning(
                "Payment %s for order %s not verified: %s",
                payment_intent_id,
                order_id,
                result.status,
            )
            raise CheckoutError(
                SUPPORT_MESSAGE,
                status_code=response.status_code,
                detail=result.message,
            )
        return result

    def complete_checkout(
        self,
        order_id: str,
        *,
        payment_intent_id: str | None = None,
        transaction_id: str | None = None,
        return_url: str | None = None,
        access_token: str | None = None,
    ) -> VerificationResult:
        """Finish checkout after the processor-side confirmation.

        Pass ``payment_intent_id`` when confirmation completed in-flow, or
        the ``return_url`` the customer came back on after a redirect.

        Raises:
            CheckoutError: If no intent ID is available or verification fails.
        """
        intent_id = payment_intent_id or (
            intent_id_from_return_url(return_url) if return_url else None
        )
        if not intent_id:
            raise CheckoutError(SUPPORT_MESSAGE, detail="No payment intent to verify")
        return self.verify_payment(intent_id, transaction_id, order_id, access_token)
