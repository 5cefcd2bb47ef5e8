"""Thin DynamoDB access layer shared by the payment stores.

Conditional writes report a failed condition as a value (``False`` or
``None``) rather than an exception: for reconciliation a refused write is
an expected outcome. Every other ``ClientError`` propagates to the store,
which wraps it in ``PersistenceError``.
"""

from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.config import Config
from botocore.exceptions import ClientError

from storefront.config import AppConfig, get_app_config

CONDITION_FAILED = "ConditionalCheckFailedException"

# Reused across warm Lambda invocations; holds boto3 resources only
_dynamodb_service_instance: "DynamoDBService | None" = None


def get_dynamodb_service(config: AppConfig | None = None) -> "DynamoDBService":
    """Return the process-wide DynamoDBService, creating it on first use.

    ``config`` only matters for the call that creates the instance.
    """
    global _dynamodb_service_instance
    if _dynamodb_service_instance is None:
        _dynamodb_service_instance = DynamoDBService(config)
    return _dynamodb_service_instance


def reset_dynamodb_service() -> None:
    """Drop the shared instance so tests can rebuild it inside ``mock_aws``."""
    global _dynamodb_service_instance
    _dynamodb_service_instance = None


def _condition_failed(error: ClientError) -> bool:
    return bool(error.response.get("Error", {}).get("Code") == CONDITION_FAILED)


class DynamoDBService:
    """Table access with environment-prefixed names and bounded call times.

    Stores pass the bare table name (``orders``, ``payment-transactions``);
    the prefix from ``AppConfig.table_prefix`` is added here.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        config = config or get_app_config()
        self.name_prefix = config.table_prefix
        self._dynamodb = boto3.resource(
            "dynamodb",
            config=Config(
                connect_timeout=config.store_timeout_seconds,
                read_timeout=config.store_timeout_seconds,
                retries={"mode": "standard"},
            ),
        )

    def table_name(self, table: str) -> str:
        return f"{self.name_prefix}-{table}"

    def _table(self, table: str) -> Any:
        return self._dynamodb.Table(self.table_name(table))

    def get_item(self, table: str, key: dict[str, Any]) -> dict[str, Any] | None:
        """Strongly consistent read, so a store sees its own last write."""
        response = self._table(table).get_item(Key=key, ConsistentRead=True)
        item: dict[str, Any] | None = response.get("Item")
        return item

    def put_item(
        self,
        table: str,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> bool:
        """Write ``item``; False when ``condition_expression`` did not hold."""
        kwargs: dict[str, Any] = {"Item": item}
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            self._table(table).put_item(**kwargs)
        except ClientError as e:
            if _condition_failed(e):
                return False
            raise
        return True

    def update_item(
        self,
        table: str,
        key: dict[str, Any],
        update_expression: str,
        expression_attribute_values: dict[str, Any],
        expression_attribute_names: dict[str, str] | None = None,
        condition_expression: str | None = None,
    ) -> dict[str, Any] | None:
        """Apply an update expression and return the item as written.

        Attribute names that are DynamoDB reserved words (``status``,
        ``processed``) must be passed as ``#name`` placeholders through
        ``expression_attribute_names``.

        Returns:
            All attributes after the update, or None if the condition failed.
        """
        kwargs: dict[str, Any] = {
            "Key": key,
            "UpdateExpression": update_expression,
            "ExpressionAttributeValues": expression_attribute_values,
            "ReturnValues": "ALL_NEW",
        }
        if expression_attribute_names:
            kwargs["ExpressionAttributeNames"] = expression_attribute_names
        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression
        try:
            response = self._table(table).update_item(**kwargs)
        except ClientError as e:
            if _condition_failed(e):
                return None
            raise
        attrs: dict[str, Any] | None = response.get("Attributes")
        return attrs

    def query(
        self,
        table: str,
        key_condition: Any,
        index_name: str | None = None,
    ) -> list[dict[str, Any]]:
        """Query a table or GSI, following pagination to the last page."""
        kwargs: dict[str, Any] = {"KeyConditionExpression": key_condition}
        if index_name:
            kwargs["IndexName"] = index_name

        items: list[dict[str, Any]] = []
        while True:
            response = self._table(table).query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    def query_by_gsi(
        self,
        table: str,
        index_name: str,
        partition_key_name: str,
        partition_key_value: str,
    ) -> list[dict[str, Any]]:
        """All items of ``index_name`` whose partition key equals the value."""
        return self.query(
            table,
            Key(partition_key_name).eq(partition_key_value),
            index_name=index_name,
        )
