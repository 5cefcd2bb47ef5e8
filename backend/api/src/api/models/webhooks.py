"""API models for webhook endpoints."""

from pydantic import BaseModel, Field

from storefront.models import WebhookResult


class WebhookResponse(BaseModel):
    """Acknowledgement returned to the processor."""

    received: bool = True
    success: bool = True
    result: WebhookResult = Field(
        ...,
        description="processed, ignored (unhandled event type) or duplicate",
    )
