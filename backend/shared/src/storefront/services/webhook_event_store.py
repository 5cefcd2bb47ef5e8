"""Audit log and replay protection for processor webhook deliveries.

Rows are keyed by (processor_id, event_id). The conditional insert on
that key is the only deduplication mechanism; no application lock is held.
"""

import datetime as dt
import json
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from storefront.models import PersistenceError, WebhookEvent
from storefront.utils.logging import get_logger

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)


class RecordOutcome(str, Enum):
    """What recording a delivery found in the store."""

    INSERTED = "inserted"  # first delivery
    DUPLICATE = "duplicate"  # already processed, or in flight elsewhere
    RECLAIMED = "reclaimed"  # redelivery of a previously failed attempt


class WebhookEventStore:
    """Stores webhook events and tracks their processing state."""

    EVENTS_TABLE = "webhook-events"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize webhook event store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def record_event(
        self,
        processor_id: str,
        event_id: str,
        event_type: str,
        event_data: dict[str, Any],
    ) -> RecordOutcome:
        """Insert the audit row for a delivery, or classify it as a redelivery.

        An existing row that is unprocessed and carries ``last_error`` is
        claimed for another attempt with a conditional update on
        ``processing_attempts``; losing that race makes the delivery a
        duplicate.

        Raises:
            PersistenceError: If the store cannot be written or read.
        """
        now = dt.datetime.now(dt.UTC)
        event = WebhookEvent(
            webhook_event_id=str(uuid.uuid4()),
            processor_id=processor_id,
            event_id=event_id,
            event_type=event_type,
            event_data=event_data,
            created_at=now,
        )

        try:
            inserted = self.db.put_item(
                self.EVENTS_TABLE,
                self._event_to_item(event),
                condition_expression="attribute_not_exists(event_id)",
            )
        except ClientError as e:
            logger.error("Failed to record webhook event %s: %s", event_id, e)
            raise PersistenceError(f"Failed to record webhook event {event_id}") from e

        if inserted:
            return RecordOutcome.INSERTED

        existing = self.get_event(processor_id, event_id)
        if existing is None or existing.processed or not existing.last_error:
            return RecordOutcome.DUPLICATE

        try:
            claimed = self.db.update_item(
                self.EVENTS_TABLE,
                {"processor_id": processor_id, "event_id": event_id},
                "SET processing_attempts = processing_attempts + :one REMOVE last_error, failed_at",
                {
                    ":one": 1,
                    ":seen": existing.processing_attempts,
                    ":false": False,
                },
                {"#processed": "processed"},  # processed is a reserved word
                condition_expression=(
                    "#processed = :false AND processing_attempts = :seen "
                    "AND attribute_exists(last_error)"
                ),
            )
        except ClientError as e:
            logger.error("Failed to claim webhook event %s for retry: %s", event_id, e)
            raise PersistenceError(f"Failed to claim webhook event {event_id}") from e

        if claimed is None:
            return RecordOutcome.DUPLICATE
        logger.info(
            "Retrying webhook event %s (attempt %d)",
            event_id,
            int(claimed["processing_attempts"]),
        )
        return RecordOutcome.RECLAIMED

    def get_event(self, processor_id: str, event_id: str) -> WebhookEvent | None:
        try:
            item = self.db.get_item(
                self.EVENTS_TABLE,
                {"processor_id": processor_id, "event_id": event_id},
            )
        except ClientError as e:
            logger.error("Failed to read webhook event %s: %s", event_id, e)
            raise PersistenceError(f"Failed to read webhook event {event_id}") from e
        return self._item_to_event(item) if item else None

    def mark_processed(
        self,
        processor_id: str,
        event_id: str,
        transaction_id: str | None = None,
    ) -> bool:
        """Flag an event as processed, linking the transaction it touched.

        Returns:
            True if the row was updated, False if it does not exist.
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        update_expression = "SET #processed = :true, processed_at = :now"
        values: dict[str, Any] = {":true": True, ":now": now}
        if transaction_id:
            update_expression += ", payment_transaction_id = :tid"
            values[":tid"] = transaction_id

        try:
            attrs = self.db.update_item(
                self.EVENTS_TABLE,
                {"processor_id": processor_id, "event_id": event_id},
                update_expression,
                values,
                {"#processed": "processed"},
                condition_expression="attribute_exists(event_id)",
            )
        except ClientError as e:
            raise PersistenceError(f"Failed to mark webhook event {event_id} processed") from e
        return attrs is not None

    def record_failure(self, processor_id: str, event_id: str, error: str) -> bool:
        """Store the error of a failed processing attempt.

        Returns:
            True if the row was updated, False if it does not exist.
        """
        now = dt.datetime.now(dt.UTC).isoformat()
        try:
            attrs = self.db.update_item(
                self.EVENTS_TABLE,
                {"processor_id": processor_id, "event_id": event_id},
                "SET last_error = :error, failed_at = :now",
                {":error": error, ":now": now, ":false": False},
                {"#processed": "processed"},
                condition_expression="attribute_exists(event_id) AND #processed = :false",
            )
        except ClientError as e:
            raise PersistenceError(f"Failed to record failure for webhook event {event_id}") from e
        return attrs is not None

    # Conversion helpers

    def _event_to_item(self, event: WebhookEvent) -> dict[str, Any]:
        """Convert WebhookEvent model to DynamoDB item."""
        item: dict[str, Any] = {
            "processor_id": event.processor_id,
            "event_id": event.event_id,
            "webhook_event_id": event.webhook_event_id,
            "event_type": event.event_type,
            # Stored as JSON text: DynamoDB rejects floats and empty sets
            "event_data": json.dumps(event.event_data, default=str),
            "processed": event.processed,
            "processing_attempts": event.processing_attempts,
            "created_at": event.created_at.isoformat(),
        }
        if event.processed_at:
            item["processed_at"] = event.processed_at.isoformat()
        if event.last_error:
            item["last_error"] = event.last_error
        if event.failed_at:
            item["failed_at"] = event.failed_at.isoformat()
        if event.payment_transaction_id:
            item["payment_transaction_id"] = event.payment_transaction_id
        return item

    def _item_to_event(self, item: dict[str, Any]) -> WebhookEvent:
        """Convert DynamoDB item to WebhookEvent model."""
        return WebhookEvent(
            webhook_event_id=item["webhook_event_id"],
            processor_id=item["processor_id"],
            event_id=item["event_id"],
            event_type=item["event_type"],
            event_data=json.loads(item["event_data"]),
            processed=bool(item.get("processed", False)),
            processed_at=(
                dt.datetime.fromisoformat(item["processed_at"])
                if item.get("processed_at")
                else None
            ),
            processing_attempts=int(item.get("processing_attempts", 1)),
            last_error=item.get("last_error"),
            failed_at=(
                dt.datetime.fromisoformat(item["failed_at"]) if item.get("failed_at") else None
            ),
            payment_transaction_id=item.get("payment_transaction_id"),
            created_at=dt.datetime.fromisoformat(item["created_at"]),
        )
