"""Order model as seen by payment reconciliation."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from .enums import OrderStatus


class Order(BaseModel):
    """A customer order.

    ``status`` is the single source of truth for fulfilment eligibility.
    """

    model_config = ConfigDict(strict=True)

    order_id: str = Field(..., description="Unique order ID")
    user_id: str = Field(..., description="Owning customer")
    total_amount: Decimal = Field(..., ge=0, description="Order total in major units")
    status: OrderStatus = Field(default=OrderStatus.PENDING)
    discount_code_id: str | None = Field(default=None, description="Applied discount reference")
    version: int = Field(default=0, ge=0, description="Incremented on every status write")
    created_at: datetime | None = None
    updated_at: datetime | None = None
