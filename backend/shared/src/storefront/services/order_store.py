"""Order status writes used by payment reconciliation."""

import datetime as dt
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from storefront.models import NotFoundError, Order, OrderStatus, PersistenceError
from storefront.utils.logging import get_logger

if TYPE_CHECKING:
    from .dynamodb import DynamoDBService

logger = get_logger(__name__)

# Statuses from which each reconciliation target may be reached. A confirmed
# order is cancelled only when no payment was captured for it, see set_status.
# Shipped/delivered orders are never touched.
ALLOWED_PREDECESSORS: dict[OrderStatus, tuple[OrderStatus, ...]] = {
    OrderStatus.CONFIRMED: (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CANCELLED: (OrderStatus.PENDING, OrderStatus.CANCELLED),
}


class OrderStore:
    """Reads orders and applies guarded status transitions."""

    ORDERS_TABLE = "orders"

    def __init__(self, db: "DynamoDBService") -> None:
        """Initialize order store.

        Args:
            db: DynamoDB service instance
        """
        self.db = db

    def get_order(self, order_id: str) -> Order | None:
        """Get an order by ID.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        try:
            item = self.db.get_item(self.ORDERS_TABLE, {"order_id": order_id})
        except ClientError as e:
            logger.error("Failed to read order %s: %s", order_id, e)
            raise PersistenceError(f"Failed to read order {order_id}") from e
        return self._item_to_order(item) if item else None

    def set_status(
        self,
        order_id: str,
        status: OrderStatus,
        *,
        payment_captured: bool = True,
    ) -> Order:
        """Move an order to ``confirmed`` or ``cancelled``.

        The write is conditional on the order's current status being an
        allowed predecessor of ``status``. A refused write leaves the order
        unchanged and is not an error.

        Args:
            order_id: Order to update
            status: Target status (confirmed or cancelled)
            payment_captured: Whether any transaction for the order succeeded.
                When False, a confirmed order may be cancelled (an authorization
                that was never captured).

        Returns:
            The order as stored after the attempt.

        Raises:
            NotFoundError: If the order does not exist.
            PersistenceError: If the store rejects or cannot perform the write.
        """
        predecessors = ALLOWED_PREDECESSORS.get(status)
        if predecessors is None:
            raise ValueError(f"Reconciliation cannot move an order to {status.value}")
        if status is OrderStatus.CANCELLED and not payment_captured:
            predecessors = (*predecessors, OrderStatus.CONFIRMED)

        now = dt.datetime.now(dt.UTC)
        placeholders = [f":from{i}" for i in range(len(predecessors))]
        values: dict[str, Any] = {
            ":status": status.value,
            ":now": now.isoformat(),
            ":zero": 0,
            ":one": 1,
        }
        values.update({ph: s.value for ph, s in zip(placeholders, predecessors)})

        try:
            attrs = self.db.update_item(
                self.ORDERS_TABLE,
                {"order_id": order_id},
                "SET #status = :status, updated_at = :now, "
                "version = if_not_exists(version, :zero) + :one",
                values,
                {"#status": "status"},  # status is a reserved word
                condition_expression=(
                    f"attribute_exists(order_id) AND #status IN ({', '.join(placeholders)})"
                ),
            )
        except ClientError as e:
            logger.error("Failed to update order %s to %s: %s", order_id, status.value, e)
            raise PersistenceError(f"Failed to update order {order_id}") from e

        if attrs is not None:
            logger.info("Order %s status set to %s", order_id, status.value)
            return self._item_to_order(attrs)

        # Condition failed: either the order is missing or the guard refused
        current = self.get_order(order_id)
        if current is None:
            raise NotFoundError(f"Order {order_id} not found")
        logger.warning(
            "Order %s left at %s; transition to %s not allowed",
            order_id,
            current.status.value,
            status.value,
        )
        return current

    def _item_to_order(self, item: dict[str, Any]) -> Order:
        """Convert DynamoDB item to Order model."""
        return Order(
            order_id=item["order_id"],
            user_id=item["user_id"],
            total_amount=Decimal(str(item["total_amount"])),
            status=OrderStatus(item["status"]),
            discount_code_id=item.get("discount_code_id"),
            version=int(item.get("version", 0)),
            created_at=(
                dt.datetime.fromisoformat(item["created_at"]) if item.get("created_at") else None
            ),
            updated_at=(
                dt.datetime.fromisoformat(item["updated_at"]) if item.get("updated_at") else None
            ),
        )
