#!/usr/bin/env python3
"""Seed a development environment for the payment API.

Creates the DynamoDB tables (optionally), stores the Stripe credentials in
the settings table, registers the Stripe processor, and can add a sample
pending order to check out against.

Usage:
    python backend/scripts/seed_data.py --env dev --create-tables
    python backend/scripts/seed_data.py --env dev --sample-order
    STRIPE_SECRET_KEY=sk_test_... STRIPE_WEBHOOK_SECRET=whsec_... \\
        python backend/scripts/seed_data.py --env dev

    # Against DynamoDB Local
    python backend/scripts/seed_data.py --endpoint-url http://localhost:8000 --create-tables
"""

import argparse
import os
import sys
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import boto3
from botocore.exceptions import ClientError

# Global connection settings (set by main() from args)
_AWS_REGION: str | None = None
_ENDPOINT_URL: str | None = None

# name -> (key schema, attribute definitions, GSIs)
TABLES: dict[str, dict[str, Any]] = {
    "settings": {
        "KeySchema": [{"AttributeName": "key", "KeyType": "HASH"}],
        "AttributeDefinitions": [{"AttributeName": "key", "AttributeType": "S"}],
    },
    "payment-processors": {
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
            }
        ],
    },
    "orders": {
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
            }
        ],
    },
    "payment-transactions": {
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
    },
    "webhook-events": {
        "KeySchema": [
            {"AttributeName": "processor_id", "KeyType": "HASH"},
            {"AttributeName": "event_id", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "processor_id", "AttributeType": "S"},
            {"AttributeName": "event_id", "AttributeType": "S"},
        ],
    },
}


def get_dynamodb_resource():
    """Get DynamoDB resource with configured region and endpoint."""
    kwargs: dict[str, Any] = {}
    if _AWS_REGION:
        kwargs["region_name"] = _AWS_REGION
    if _ENDPOINT_URL:
        kwargs["endpoint_url"] = _ENDPOINT_URL
    return boto3.resource("dynamodb", **kwargs)


def get_table_name(prefix: str, table: str) -> str:
    """Get full table name with environment prefix."""
    return f"{prefix}-{table}"


def create_tables(prefix: str) -> list[str]:
    """Create any missing tables (on-demand billing).

    Returns:
        Names of the tables that were created
    """
    dynamodb = get_dynamodb_resource()
    created = []
    for table, schema in TABLES.items():
        name = get_table_name(prefix, table)
        try:
            dynamodb.create_table(TableName=name, BillingMode="PAY_PER_REQUEST", **schema)
        except ClientError as e:
            if e.response["Error"]["Code"] != "ResourceInUseException":
                raise
            print(f"  ○ {name} (exists)")
            continue
        dynamodb.Table(name).wait_until_exists()
        print(f"  ✓ {name}")
        created.append(name)
    return created


def seed_settings(
    prefix: str,
    secret_key: str | None,
    webhook_secret: str | None,
    test_mode: bool,
) -> None:
    """Store Stripe credentials and mode in the settings table.

    Keys without a value are left untouched.
    """
    dynamodb = get_dynamodb_resource()
    table = dynamodb.Table(get_table_name(prefix, "settings"))

    print(f"Seeding settings table: {table.name}")

    values: dict[str, Any] = {"stripe_test_mode": test_mode}
    if secret_key:
        values["stripe_secret_key"] = secret_key
    if webhook_secret:
        values["stripe_webhook_secret"] = webhook_secret

    for key, value in values.items():
        table.put_item(Item={"key": key, "value": value})
        shown = value if key == "stripe_test_mode" else f"{str(value)[:7]}..."
        print(f"  ✓ {key} = {shown}")

    if not secret_key:
        print("  ○ stripe_secret_key not set (pass --secret-key or STRIPE_SECRET_KEY)")
    if not webhook_secret:
        print("  ○ stripe_webhook_secret not set (pass --webhook-secret or STRIPE_WEBHOOK_SECRET)")


def register_processor(prefix: str, name: str = "stripe") -> str:
    """Register the payment processor by name, reusing an existing row.

    Returns:
        The processor_id
    """
    from boto3.dynamodb.conditions import Key

    dynamodb = get_dynamodb_resource()
    table = dynamodb.Table(get_table_name(prefix, "payment-processors"))

    existing = table.query(IndexName="name-index", KeyConditionExpression=Key("name").eq(name))
    if existing.get("Items"):
        processor_id = existing["Items"][0]["processor_id"]
        print(f"  ○ Processor '{name}' already registered ({processor_id})")
        return processor_id

    processor_id = str(uuid.uuid4())
    table.put_item(
        Item={
            "processor_id": processor_id,
            "name": name,
            "is_active": True,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
    )
    print(f"  ✓ Processor '{name}' registered ({processor_id})")
    return processor_id


def create_sample_order(prefix: str, total: Decimal = Decimal("49.99")) -> str:
    """Create a pending order to run a checkout against.

    Returns:
        The order_id
    """
    dynamodb = get_dynamodb_resource()
    table = dynamodb.Table(get_table_name(prefix, "orders"))

    order_id = f"ord_{uuid.uuid4().hex[:12]}"
    now = datetime.now(timezone.utc).isoformat()
    table.put_item(
        Item={
            "order_id": order_id,
            "user_id": "usr_sample",
            "total_amount": total,
            "status": "pending",
            "version": 0,
            "created_at": now,
            "updated_at": now,
        }
    )
    print(f"  ✓ Order {order_id} ({total}, pending)")
    return order_id


def main() -> int:
    """Run the seed script."""
    global _AWS_REGION, _ENDPOINT_URL

    parser = argparse.ArgumentParser(description="Seed payment settings and tables")
    parser.add_argument(
        "--env",
        choices=["dev", "staging", "prod"],
        default="dev",
        help="Target environment (default: dev)",
    )
    parser.add_argument(
        "--prefix",
        default=os.environ.get("DYNAMODB_TABLE_PREFIX"),
        help="Table name prefix (default: DYNAMODB_TABLE_PREFIX or storefront-<env>)",
    )
    parser.add_argument(
        "--region",
        default=os.environ.get("AWS_DEFAULT_REGION", "eu-west-1"),
        help="AWS region (default: eu-west-1 or AWS_DEFAULT_REGION env var)",
    )
    parser.add_argument("--endpoint-url", help="DynamoDB endpoint (e.g. DynamoDB Local)")
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables")
    parser.add_argument(
        "--secret-key",
        default=os.environ.get("STRIPE_SECRET_KEY"),
        help="Stripe secret key (default: STRIPE_SECRET_KEY env var)",
    )
    parser.add_argument(
        "--webhook-secret",
        default=os.environ.get("STRIPE_WEBHOOK_SECRET"),
        help="Stripe webhook signing secret (default: STRIPE_WEBHOOK_SECRET env var)",
    )
    parser.add_argument("--live", action="store_true", help="Mark the keys as live-mode keys")
    parser.add_argument("--sample-order", action="store_true", help="Create a pending sample order")

    args = parser.parse_args()

    _AWS_REGION = args.region
    _ENDPOINT_URL = args.endpoint_url
    prefix = args.prefix or f"storefront-{args.env}"

    # Safety check for production
    if args.env == "prod":
        confirm = input("⚠️  WARNING: You are about to modify PRODUCTION settings. Type 'yes' to continue: ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return 1

    print(f"\n🌱 Seeding {prefix} (region: {args.region})\n")

    if args.create_tables:
        print("Creating tables...")
        try:
            create_tables(prefix)
        except ClientError as e:
            print(f"  ❌ Failed to create tables: {e}")
            return 1
        print()

    try:
        seed_settings(prefix, args.secret_key, args.webhook_secret, test_mode=not args.live)
        print()
        register_processor(prefix)
    except ClientError as e:
        print(f"  ❌ Failed to seed settings: {e}")
        return 1

    if args.sample_order:
        print()
        try:
            create_sample_order(prefix)
        except ClientError as e:
            print(f"  ❌ Failed to create sample order: {e}")
            # Non-fatal, continue

    print("\n✅ Seed completed successfully!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
