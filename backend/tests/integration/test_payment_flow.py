"""Integration tests for the complete payment flow.

Tests drive the HTTP API (through the checkout client where a caller
would) against moto-backed DynamoDB, with only the Stripe client mocked:
1. Create a payment intent for a pending order
2. Confirm on the processor side (simulated)
3. Reconcile through the webhook and/or verification
4. Check transaction, order and webhook audit state

Test categories:
- Happy path: webhook confirms the order
- Declined payment: verification cancels the order
- Idempotent and redelivered webhooks
- Store and processor failures
"""

from decimal import Decimal
from typing import Any, Callable, Generator
from unittest.mock import MagicMock, patch

import httpx
import pytest
import stripe
from botocore.exceptions import ClientError
from fastapi.testclient import TestClient

from api.main import app
from storefront.client import SUPPORT_MESSAGE, CheckoutClient, CheckoutError
from storefront.services.dynamodb import get_dynamodb_service

ACCESS_TOKEN = "test-access-token"
ORDER_ID = "ord_123"
USER_ID = "usr_456"
PROCESSOR_ID = "proc-stripe-0001"


# === Test Fixtures ===


@pytest.fixture
def api(create_tables: None) -> Generator[TestClient, None, None]:
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def checkout(api: TestClient) -> Generator[CheckoutClient, None, None]:
    """CheckoutClient whose requests are served by the in-process app."""

    def forward(request: httpx.Request) -> httpx.Response:
        response = api.request(
            request.method,
            request.url.path,
            content=request.content,
            headers=dict(request.headers),
        )
        return httpx.Response(
            response.status_code,
            headers={"Content-Type": response.headers.get("content-type", "application/json")},
            content=response.content,
        )

    with CheckoutClient("http://testserver/api", transport=httpx.MockTransport(forward)) as client:
        yield client


@pytest.fixture
def post_webhook(api: TestClient, sign: Callable[..., str]) -> Callable[[bytes], Any]:
    def _post(payload: bytes) -> Any:
        return api.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign(payload)},
        )

    return _post


@pytest.fixture
def order(configured: None, make_order: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """A pending 49.99 USD order with the processor configured."""
    return make_order(order_id=ORDER_ID, total_amount=Decimal("49.99"))


def _store_error(operation: str) -> ClientError:
    return ClientError(
        {"Error": {"Code": "InternalServerError", "Message": "Service unavailable"}},
        operation,
    )


# === Happy Path ===


class TestSuccessfulPaymentFlow:
    def test_webhook_confirms_order(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        post_webhook: Callable[[bytes], Any],
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        make_event: Callable[..., bytes],
        get_row: Callable[..., Any],
        scan_table: Callable[[str], list[dict[str, Any]]],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()

        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )

        params = mock_stripe_client.payment_intents.create.call_args.kwargs["params"]
        assert params["amount"] == 4999
        assert params["currency"] == "USD"
        txn = get_row("payment-transactions", {"transaction_id": creds.transaction_id})
        assert txn["status"] == "processing"

        response = post_webhook(make_event(intent_id=creds.payment_intent_id))

        assert response.status_code == 200
        assert response.json()["result"] == "processed"

        txn = get_row("payment-transactions", {"transaction_id": creds.transaction_id})
        assert txn["status"] == "succeeded"
        assert "processed_at" in txn
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "confirmed"

        events = scan_table("webhook-events")
        assert len(events) == 1
        assert events[0]["processed"] is True
        assert events[0]["payment_transaction_id"] == creds.transaction_id

    def test_verification_after_webhook_agrees(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        post_webhook: Callable[[bytes], Any],
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        make_event: Callable[..., bytes],
        get_row: Callable[..., Any],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()
        mock_stripe_client.payment_intents.retrieve.return_value = make_intent(status="succeeded")

        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )
        post_webhook(make_event(intent_id=creds.payment_intent_id))
        result = checkout.complete_checkout(
            ORDER_ID,
            payment_intent_id=creds.payment_intent_id,
            transaction_id=creds.transaction_id,
        )

        assert result.success is True
        assert result.status == "succeeded"
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "confirmed"
        txn = get_row("payment-transactions", {"transaction_id": creds.transaction_id})
        assert txn["status"] == "succeeded"

    def test_duplicate_webhook_delivery(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        post_webhook: Callable[[bytes], Any],
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        make_event: Callable[..., bytes],
        get_row: Callable[..., Any],
        scan_table: Callable[[str], list[dict[str, Any]]],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()
        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )
        payload = make_event(intent_id=creds.payment_intent_id)

        first = post_webhook(payload)
        txn_after_first = get_row("payment-transactions", {"transaction_id": creds.transaction_id})
        second = post_webhook(payload)

        assert first.json()["result"] == "processed"
        assert second.status_code == 200
        assert second.json()["result"] == "duplicate"
        assert get_row("payment-transactions", {"transaction_id": creds.transaction_id}) == txn_after_first
        assert len(scan_table("webhook-events")) == 1


# === Declined Payment ===


class TestDeclinedPaymentFlow:
    def test_verification_cancels_order(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        get_row: Callable[..., Any],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()
        mock_stripe_client.payment_intents.retrieve.return_value = make_intent(
            status="requires_payment_method",
            last_payment_error={"message": "Your card was declined.", "code": "card_declined"},
        )
        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )

        with pytest.raises(CheckoutError) as exc_info:
            checkout.verify_payment(creds.payment_intent_id, creds.transaction_id, ORDER_ID)

        assert exc_info.value.message == SUPPORT_MESSAGE
        txn = get_row("payment-transactions", {"transaction_id": creds.transaction_id})
        assert txn["status"] == "failed"
        assert txn["failure_reason"] == "Your card was declined."
        assert "failed_at" in txn
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "cancelled"

    def test_retry_after_decline_confirms_order(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        post_webhook: Callable[[bytes], Any],
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        make_event: Callable[..., bytes],
        get_row: Callable[..., Any],
    ) -> None:
        """A new intent for a cancelled order may still confirm it."""
        mock_stripe_client.payment_intents.create.side_effect = [
            make_intent(intent_id="pi_first", client_secret="pi_first_secret"),
            make_intent(intent_id="pi_second", client_secret="pi_second_secret"),
        ]
        first = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )
        post_webhook(
            make_event(
                event_type="payment_intent.payment_failed",
                event_id="evt_fail",
                intent_id=first.payment_intent_id,
            )
        )
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "cancelled"

        second = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )
        post_webhook(make_event(event_id="evt_ok", intent_id=second.payment_intent_id))

        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "confirmed"
        first_txn = get_row("payment-transactions", {"transaction_id": first.transaction_id})
        assert first_txn["status"] == "failed"


# === Failures ===


class TestFailureFlows:
    def test_processor_failure_leaves_no_transaction(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        mock_stripe_client: MagicMock,
        scan_table: Callable[[str], list[dict[str, Any]]],
    ) -> None:
        mock_stripe_client.payment_intents.create.side_effect = stripe.APIConnectionError(
            "Network error"
        )

        with pytest.raises(CheckoutError) as exc_info:
            checkout.create_payment_intent(
                Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
            )

        assert exc_info.value.status_code == 500
        assert exc_info.value.error_code == "ERR_PROCESSOR"
        assert scan_table("payment-transactions") == []

    def test_order_update_failure_fails_verification(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        get_row: Callable[..., Any],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()
        mock_stripe_client.payment_intents.retrieve.return_value = make_intent(status="succeeded")
        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )

        db = get_dynamodb_service()
        real_update = db.update_item

        def fail_orders(table: str, *args: Any, **kwargs: Any) -> Any:
            if table == "orders":
                raise _store_error("UpdateItem")
            return real_update(table, *args, **kwargs)

        with patch.object(db, "update_item", side_effect=fail_orders):
            with pytest.raises(CheckoutError) as exc_info:
                checkout.verify_payment(creds.payment_intent_id, creds.transaction_id, ORDER_ID)

        assert exc_info.value.error_code == "ERR_PERSISTENCE"
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "pending"

    def test_webhook_redelivery_after_failure(
        self,
        order: dict[str, Any],
        checkout: CheckoutClient,
        post_webhook: Callable[[bytes], Any],
        mock_stripe_client: MagicMock,
        make_intent: Callable[..., Any],
        make_event: Callable[..., bytes],
        get_row: Callable[..., Any],
    ) -> None:
        mock_stripe_client.payment_intents.create.return_value = make_intent()
        creds = checkout.create_payment_intent(
            Decimal("49.99"), ORDER_ID, USER_ID, access_token=ACCESS_TOKEN
        )
        payload = make_event(intent_id=creds.payment_intent_id)

        db = get_dynamodb_service()
        real_update = db.update_item

        def fail_orders(table: str, *args: Any, **kwargs: Any) -> Any:
            if table == "orders":
                raise _store_error("UpdateItem")
            return real_update(table, *args, **kwargs)

        with patch.object(db, "update_item", side_effect=fail_orders):
            first = post_webhook(payload)

        assert first.status_code == 500
        event = get_row("webhook-events", {"processor_id": PROCESSOR_ID, "event_id": "evt_test_001"})
        assert event["processed"] is False
        assert "last_error" in event

        second = post_webhook(payload)

        assert second.status_code == 200
        assert second.json()["result"] == "processed"
        assert get_row("orders", {"order_id": ORDER_ID})["status"] == "confirmed"
        event = get_row("webhook-events", {"processor_id": PROCESSOR_ID, "event_id": "evt_test_001"})
        assert event["processed"] is True
        assert event["processing_attempts"] == 2
