"""Payment reconciliation services for the storefront."""

from .dynamodb import DynamoDBService, get_dynamodb_service, reset_dynamodb_service
from .intent_service import PaymentIntentService
from .order_store import OrderStore
from .settings_service import SettingsService
from .stripe_service import StripeService
from .transaction_store import TransactionStore
from .verification_service import VerificationService
from .webhook_event_store import RecordOutcome, WebhookEventStore
from .webhook_handler import WebhookHandler

__all__ = [
    "DynamoDBService",
    "get_dynamodb_service",
    "reset_dynamodb_service",
    "OrderStore",
    "PaymentIntentService",
    "RecordOutcome",
    "SettingsService",
    "StripeService",
    "TransactionStore",
    "VerificationService",
    "WebhookEventStore",
    "WebhookHandler",
]
