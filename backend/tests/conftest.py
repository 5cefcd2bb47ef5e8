"""Pytest configuration and fixtures for storefront payment tests.

This module provides reusable fixtures for testing:
- DynamoDB mocking with moto
- Settings / processor registry seeding
- Stripe client mocking and signed webhook payloads
- Sample orders
"""

import hashlib
import hmac
import json
import os
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Generator
from unittest.mock import MagicMock, patch

import boto3
import pytest
import stripe
from moto import mock_aws

# === Environment Setup ===

# Set environment variables for testing before imports
os.environ.setdefault("AWS_DEFAULT_REGION", "eu-west-1")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DYNAMODB_TABLE_PREFIX", "test-storefront")

# Only set fake credentials for moto if no real credentials are present
if not os.environ.get("AWS_PROFILE") and not os.environ.get("AWS_ACCESS_KEY_ID"):
    os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
    os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")


# === Test Configuration ===

TABLE_PREFIX = os.environ["DYNAMODB_TABLE_PREFIX"]
TEST_SECRET_KEY = "sk_test_abc123xyz"
TEST_WEBHOOK_SECRET = "whsec_test_secret123"
TEST_PROCESSOR_ID = "proc-stripe-0001"
TEST_ORDER_ID = "ord_123"
TEST_USER_ID = "usr_456"


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Mark tests by suite directory so `-m unit` etc. select them."""
    for item in items:
        for suite in ("unit", "contract", "integration"):
            if f"{os.sep}{suite}{os.sep}" in str(item.path):
                item.add_marker(getattr(pytest.mark, suite))


# === Singleton Reset ===


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Reset cached services and config before and after each test.

    This ensures tests using mock_aws get a fresh DynamoDBService inside
    the mock context rather than reusing one from a previous test.
    """
    from api.dependencies import reset_services

    reset_services()
    yield
    reset_services()


# === DynamoDB Fixtures ===


@pytest.fixture
def aws_credentials() -> None:
    """Mocked AWS Credentials for moto."""
    if not os.environ.get("AWS_PROFILE"):
        os.environ["AWS_ACCESS_KEY_ID"] = "testing"
        os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
        os.environ["AWS_SECURITY_TOKEN"] = "testing"
        os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "eu-west-1"


@pytest.fixture
def dynamodb_client(aws_credentials: None) -> Generator[Any, None, None]:
    """Create a mocked DynamoDB client."""
    with mock_aws():
        client = boto3.client("dynamodb", region_name="eu-west-1")
        yield client


TABLE_DEFINITIONS: list[dict[str, Any]] = [
    {
        "TableName": f"{TABLE_PREFIX}-settings",
        "KeySchema": [{"AttributeName": "key", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "key", "AttributeType": "S"}],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-payment-processors",
        "KeySchema": [{"AttributeName": "processor_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "processor_id", "AttributeType": "S"},
            {"AttributeName": "name", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "name-index",
                "KeySchema": [{"AttributeName": "name", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-orders",
        "KeySchema": [{"AttributeName": "order_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "order_id", "AttributeType": "S"},
            {"AttributeName": "user_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "user-index",
                "KeySchema": [{"AttributeName": "user_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-payment-transactions",
        "KeySchema": [{"AttributeName": "transaction_id", "KeyType": "HASH"}],
        "AttributeDefinitions": [
            {"AttributeName": "transaction_id", "AttributeType": "S"},
            {"AttributeName": "order_id", "AttributeType": "S"},
            {"AttributeName": "processor_payment_intent_id", "AttributeType": "S"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": "order-index",
                "KeySchema": [{"AttributeName": "order_id", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
            },
            {
                "IndexName": "payment-intent-index",
                "KeySchema": [
                    {"AttributeName": "processor_payment_intent_id", "KeyType": "HASH"}
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
    {
        "TableName": f"{TABLE_PREFIX}-webhook-events",
        "KeySchema": [
            {"AttributeName": "processor_id", "KeyType": "HASH"},
            {"AttributeName": "event_id", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "processor_id", "AttributeType": "S"},
            {"AttributeName": "event_id", "AttributeType": "S"},
        ],
        "BillingMode": "PAY_PER_REQUEST",
    },
]


@pytest.fixture
def create_tables(dynamodb_client: Any) -> None:
    """Create all required DynamoDB tables for testing."""
    for table in TABLE_DEFINITIONS:
        dynamodb_client.create_table(**table)


@pytest.fixture
def dynamodb_resource(create_tables: None) -> Any:
    """DynamoDB resource inside the mock, with tables created."""
    return boto3.resource("dynamodb", region_name="eu-west-1")


@pytest.fixture
def db(create_tables: None) -> Any:
    """DynamoDBService bound to the mocked tables."""
    from storefront.services.dynamodb import get_dynamodb_service

    return get_dynamodb_service()


@pytest.fixture
def seed_settings(dynamodb_resource: Any) -> Callable[..., None]:
    """Write processor settings and the registry row.

    Returns a function so tests can seed partial or live-mode settings.
    """

    def _seed(
        secret_key: str | None = TEST_SECRET_KEY,
        webhook_secret: str | None = TEST_WEBHOOK_SECRET,
        test_mode: Any = True,
        register_processor: bool = True,
    ) -> None:
        settings = dynamodb_resource.Table(f"{TABLE_PREFIX}-settings")
        if secret_key is not None:
            settings.put_item(Item={"key": "stripe_secret_key", "value": secret_key})
        if webhook_secret is not None:
            settings.put_item(Item={"key": "stripe_webhook_secret", "value": webhook_secret})
        settings.put_item(Item={"key": "stripe_test_mode", "value": test_mode})
        if register_processor:
            dynamodb_resource.Table(f"{TABLE_PREFIX}-payment-processors").put_item(
                Item={"processor_id": TEST_PROCESSOR_ID, "name": "stripe", "is_active": True}
            )

    return _seed


@pytest.fixture
def configured(seed_settings: Callable[..., None]) -> None:
    """Default test-mode settings with both secrets and a registered processor."""
    seed_settings()


@pytest.fixture
def make_order(dynamodb_resource: Any) -> Callable[..., dict[str, Any]]:
    """Factory for order rows."""

    def _make(
        order_id: str = TEST_ORDER_ID,
        status: str = "pending",
        total_amount: Decimal = Decimal("49.99"),
        user_id: str = TEST_USER_ID,
    ) -> dict[str, Any]:
        item = {
            "order_id": order_id,
            "user_id": user_id,
            "total_amount": total_amount,
            "status": status,
            "version": 0,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        dynamodb_resource.Table(f"{TABLE_PREFIX}-orders").put_item(Item=item)
        return item

    return _make


@pytest.fixture
def get_row(dynamodb_resource: Any) -> Callable[[str, dict[str, Any]], dict[str, Any] | None]:
    """Read a raw item from a table (name without prefix)."""

    def _get(table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        response = dynamodb_resource.Table(f"{TABLE_PREFIX}-{table}").get_item(Key=key)
        return response.get("Item")

    return _get


@pytest.fixture
def scan_table(dynamodb_resource: Any) -> Callable[[str], list[dict[str, Any]]]:
    def _scan(table: str) -> list[dict[str, Any]]:
        return dynamodb_resource.Table(f"{TABLE_PREFIX}-{table}").scan().get("Items", [])

    return _scan


# === Stripe Fixtures ===


@pytest.fixture
def mock_stripe_client() -> Generator[MagicMock, None, None]:
    """Mock Stripe client for API calls."""
    with patch("storefront.services.stripe_service.StripeClient") as mock_client_class:
        mock_client = MagicMock()
        mock_client_class.return_value = mock_client
        yield mock_client


class AttributeOnlyPaymentIntent(stripe.PaymentIntent):
    """A PaymentIntent without dict-style reads, as newer stripe releases return."""

    def get(self, *args: Any, **kwargs: Any) -> Any:
        raise AttributeError("'get' is a dict method, but a PaymentIntent is not a dict")

    def items(self) -> Any:
        raise AttributeError("'items' is a dict method, but a PaymentIntent is not a dict")

    def __repr__(self) -> str:
        return f"<AttributeOnlyPaymentIntent id={self.id}>"


@pytest.fixture
def make_intent() -> Callable[..., stripe.PaymentIntent]:
    """Factory for real PaymentIntent objects as the Stripe client returns them."""

    def _make(
        intent_id: str = "pi_test_abc123",
        status: str = "requires_payment_method",
        amount: int = 4999,
        currency: str = "usd",
        order_id: str = TEST_ORDER_ID,
        user_id: str = TEST_USER_ID,
        last_payment_error: dict[str, Any] | None = None,
        client_secret: str | None = "pi_test_abc123_secret_xyz",
        attribute_only: bool = False,
    ) -> stripe.PaymentIntent:
        intent_cls = AttributeOnlyPaymentIntent if attribute_only else stripe.PaymentIntent
        return intent_cls.construct_from(
            {
                "id": intent_id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": currency,
                "client_secret": client_secret,
                "metadata": {"order_id": order_id, "user_id": user_id},
                "last_payment_error": last_payment_error,
                "livemode": False,
            },
            TEST_SECRET_KEY,
        )

    return _make


def create_stripe_signature(payload: bytes, secret: str = TEST_WEBHOOK_SECRET) -> str:
    """Create a valid Stripe webhook signature.

    Stripe signatures use HMAC-SHA256 with format: t={timestamp},v1={signature}
    """
    timestamp = str(int(time.time()))
    signed_payload = f"{timestamp}.{payload.decode('utf-8')}"
    signature = hmac.new(
        secret.encode("utf-8"),
        signed_payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


@pytest.fixture
def sign() -> Callable[..., str]:
    """Sign a payload with the test webhook secret."""
    return create_stripe_signature


@pytest.fixture
def make_event() -> Callable[..., bytes]:
    """Factory for raw webhook bodies."""

    def _make(
        event_type: str = "payment_intent.succeeded",
        event_id: str = "evt_test_001",
        intent_id: str = "pi_test_abc123",
        status: str | None = None,
        last_payment_error: dict[str, Any] | None = None,
        obj: dict[str, Any] | None = None,
    ) -> bytes:
        if obj is None:
            obj = {
                "id": intent_id,
                "object": "payment_intent",
                "amount": 4999,
                "currency": "usd",
                "status": status
                or ("succeeded" if event_type == "payment_intent.succeeded" else "requires_payment_method"),
                "metadata": {"order_id": TEST_ORDER_ID, "user_id": TEST_USER_ID},
                "last_payment_error": last_payment_error,
            }
        event = {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "created": 1767225600,
            "livemode": False,
            "data": {"object": obj},
        }
        return json.dumps(event).encode("utf-8")

    return _make
