"""API-specific request/response models.

Domain models (PaymentTransaction, Order, WebhookEvent, etc.) are in
storefront.models and are reused here where appropriate.

Modules:
- common: Error envelopes and validation error formatting
- payments: Intent creation and verification bodies/responses
- webhooks: Webhook acknowledgement
"""

__all__: list[str] = []
