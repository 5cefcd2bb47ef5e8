"""Payment transaction records.

Status writes go through ``apply_intent_status`` only, which derives the
local status from the processor's raw intent status.
"""

import datetime as dt
import json
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from storefront.models import (
    NotFoundError,
    PaymentTransaction,
    PersistenceError,
    TransactionStatus,
)
from storefront.utils.logging import get_logger

from .status_mapping import map_intent_status, stamps_failed_at, stamps_processed_at

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class TransactionStore:
    """Service for storing and reconciling payment transactions."""

    TRANSACTIONS_TABLE = "payment-transactions"
    ORDER_INDEX = "order-index"
    PAYMENT_INTENT_INDEX = "payment-intent-index"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize transaction store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def create(self, transaction: PaymentTransaction) -> PaymentTransaction:
        """Persist a new transaction.

        Raises:
            PersistenceError: If the row cannot be written.
        """
        try:
            written = self.db.put_item(
                self.TRANSACTIONS_TABLE,
                self._transaction_to_item(transaction),
                condition_expression="attribute_not_exists(transaction_id)",
            )
        except ClientError as e:
            logger.error("Failed to record transaction %s: %s", transaction.transaction_id, e)
            raise PersistenceError("Error recording payment transaction") from e

        if not written:
            raise PersistenceError(
                f"Transaction {transaction.transaction_id} already exists"
            )
        return transaction

    def get(self, transaction_id: str) -> PaymentTransaction | None:
        try:
            item = self.db.get_item(self.TRANSACTIONS_TABLE, {"transaction_id": transaction_id})
        except ClientError as e:
            logger.error("Failed to read transaction %s: %s", transaction_id, e)
            raise PersistenceError(f"Failed to read transaction {transaction_id}") from e
        return self._item_to_transaction(item) if item else None

    def find_by_payment_intent(self, payment_intent_id: str) -> PaymentTransaction | None:
        """Find the transaction linked to a processor intent.

        Args:
            payment_intent_id: Stripe PaymentIntent ID (pi_xxx)

        Returns:
            The transaction, or None if no row references the intent.

        Raises:
            PersistenceError: If the index cannot be queried.
        """
        try:
            items = self.db.query_by_gsi(
                self.TRANSACTIONS_TABLE,
                self.PAYMENT_INTENT_INDEX,
                "processor_payment_intent_id",
                payment_intent_id,
            )
        except ClientError as e:
            logger.error("Failed to look up transaction for intent %s: %s", payment_intent_id, e)
            raise PersistenceError(
                f"Failed to look up transaction for intent {payment_intent_id}"
            ) from e

        if not items:
            return None
        if len(items) > 1:
            logger.warning(
                "Intent %s is linked to %d transactions; using the first",
                payment_intent_id,
                len(items),
            )
        return self._item_to_transaction(items[0])

    def list_for_order(self, order_id: str) -> list[PaymentTransaction]:
        """Get all transactions for an order.

        Args:
            order_id: Order ID

        Returns:
            List of PaymentTransaction objects
        """
        try:
            items = self.db.query_by_gsi(
                self.TRANSACTIONS_TABLE,
                self.ORDER_INDEX,
                "order_id",
                order_id,
            )
        except ClientError as e:
            logger.error("Failed to list transactions for order %s: %s", order_id, e)
            raise PersistenceError(f"Failed to list transactions for order {order_id}") from e
        return [self._item_to_transaction(item) for item in items]

    def has_succeeded(self, order_id: str) -> bool:
        """True when any transaction for the order has captured money."""
        return any(
            t.status is TransactionStatus.SUCCEEDED for t in self.list_for_order(order_id)
        )

    def apply_intent_status(
        self,
        transaction_id: str,
        raw_status: str | None,
        processor_response: dict[str, Any],
        failure_reason: str | None = None,
    ) -> PaymentTransaction:
        """Record the processor's latest view of an intent on a transaction.

        The local status comes from ``map_intent_status``. ``processed_at`` is
        stamped only for succeeded; ``failed_at`` only for canceled or
        requires_payment_method. Stamps that no longer apply are removed.
        A transaction that already succeeded keeps that status; any other
        status reported for it afterwards is logged and skipped.

        Args:
            transaction_id: Transaction to update
            raw_status: Processor intent status as reported
            processor_response: Raw processor payload kept for audit
            failure_reason: Processor error message, if any

        Returns:
            The transaction as stored after the attempt.

        Raises:
            NotFoundError: If the transaction does not exist.
            PersistenceError: If the write fails.
        """
        status = map_intent_status(raw_status)
        now = dt.datetime.now(dt.UTC).isoformat()

        set_clauses = [
            "#status = :status",
            "processor_response = :response",
            "updated_at = :now",
            "version = if_not_exists(version, :zero) + :one",
        ]
        remove_clauses: list[str] = []
        values: dict[str, Any] = {
            ":status": status.value,
            ":response": json.dumps(processor_response, default=str),
            ":now": now,
            ":zero": 0,
            ":one": 1,
        }

        if failure_reason:
            set_clauses.append("failure_reason = :reason")
            values[":reason"] = failure_reason
        else:
            remove_clauses.append("failure_reason")

        if stamps_processed_at(raw_status):
            set_clauses.append("processed_at = :now")
        else:
            remove_clauses.append("processed_at")

        if stamps_failed_at(raw_status):
            set_clauses.append("failed_at = :now")
        else:
            remove_clauses.append("failed_at")

        update_expression = "SET " + ", ".join(set_clauses)
        if remove_clauses:
            update_expression += " REMOVE " + ", ".join(remove_clauses)

        # succeeded is terminal for a transaction
        condition = "attribute_exists(transaction_id)"
        if status is not TransactionStatus.SUCCEEDED:
            condition += " AND #status <> :succeeded"
            values[":succeeded"] = TransactionStatus.SUCCEEDED.value

        try:
            attrs = self.db.update_item(
                self.TRANSACTIONS_TABLE,
                {"transaction_id": transaction_id},
                update_expression,
                values,
                {"#status": "status"},  # status is a reserved word
                condition_expression=condition,
            )
        except ClientError as e:
            logger.error("Failed to update transaction %s: %s", transaction_id, e)
            raise PersistenceError(f"Failed to update transaction {transaction_id}") from e

        if attrs is None:
            current = self.get(transaction_id)
            if current is None:
                raise NotFoundError(f"Transaction {transaction_id} not found")
            logger.warning(
                "Transaction %s already succeeded; ignoring processor status %s",
                transaction_id,
                raw_status,
            )
            return current

        logger.info(
            "Transaction %s status set to %s (processor status %s)",
            transaction_id,
            status.value,
            raw_status,
        )
        return self._item_to_transaction(attrs)

    # Conversion helpers

    def _transaction_to_item(self, transaction: PaymentTransaction) -> dict[str, Any]:
        """Convert PaymentTransaction model to DynamoDB item."""
        item: dict[str, Any] = {
            "transaction_id": transaction.transaction_id,
            "order_id": transaction.order_id,
            "processor_id": transaction.processor_id,
            "amount": transaction.amount,
            "currency": transaction.currency,
            "status": transaction.status.value,
            "payment_method": transaction.payment_method,
            "metadata": transaction.metadata,
            "version": transaction.version,
            "created_at": transaction.created_at.isoformat(),
        }
        # GSI key attributes must be absent rather than null
        if transaction.processor_payment_intent_id:
            item["processor_payment_intent_id"] = transaction.processor_payment_intent_id
        if transaction.amount_minor is not None:
            item["amount_minor"] = transaction.amount_minor
        if transaction.failure_reason:
            item["failure_reason"] = transaction.failure_reason
        if transaction.processor_response is not None:
            item["processor_response"] = json.dumps(transaction.processor_response, default=str)
        if transaction.updated_at:
            item["updated_at"] = transaction.updated_at.isoformat()
        if transaction.processed_at:
            item["processed_at"] = transaction.processed_at.isoformat()
        if transaction.failed_at:
            item["failed_at"] = transaction.failed_at.isoformat()
        return item

    def _item_to_transaction(self, item: dict[str, Any]) -> PaymentTransaction:
        """Convert DynamoDB item to PaymentTransaction model."""
        return PaymentTransaction(
            transaction_id=item["transaction_id"],
            order_id=item["order_id"],
            processor_id=item["processor_id"],
            processor_payment_intent_id=item.get("processor_payment_intent_id"),
            amount=Decimal(str(item["amount"])),
            amount_minor=(
                int(item["amount_minor"]) if item.get("amount_minor") is not None else None
            ),
            currency=item.get("currency", "USD"),
            status=TransactionStatus(item["status"]),
            failure_reason=item.get("failure_reason"),
            payment_method=_plain(item.get("payment_method") or {}),
            metadata=_plain(item.get("metadata") or {}),
            processor_response=(
                json.loads(item["processor_response"]) if item.get("processor_response") else None
            ),
            version=int(item.get("version", 0)),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
            updated_at=_parse_ts(item.get("updated_at")),
            processed_at=_parse_ts(item.get("processed_at")),
            failed_at=_parse_ts(item.get("failed_at")),
        )


def _parse_ts(value: str | None) -> dt.datetime | None:
    return dt.datetime.fromisoformat(value) if value else None


def _plain(value: Any) -> Any:
    """Turn DynamoDB Decimals in a nested map back into ints/floats."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value
