"""FastAPI dependency injection providers for storefront services.

Services are stateless: processor credentials are resolved by each
operation call, so the service objects themselves can be cached.

Usage in routes:
    from api.dependencies import get_verification_service

    @router.post("/payments/verify")
    def verify_payment(
        service: VerificationService = Depends(get_verification_service),
    ):
        ...

Service Dependency Graph:
    DynamoDBService (singleton via get_dynamodb_service)
        ├── SettingsService
        ├── TransactionStore
        ├── OrderStore
        └── WebhookEventStore
    PaymentIntentService   (settings, transactions)
    VerificationService    (settings, transactions, orders)
    WebhookHandler         (settings, transactions, orders, events)

Testing:
    Use reset_services() to clear cached instances between tests.
"""

from functools import lru_cache

from storefront.config import get_app_config
from storefront.services.dynamodb import get_dynamodb_service, reset_dynamodb_service
from storefront.services.intent_service import PaymentIntentService
from storefront.services.order_store import OrderStore
from storefront.services.settings_service import SettingsService
from storefront.services.transaction_store import TransactionStore
from storefront.services.verification_service import VerificationService
from storefront.services.webhook_event_store import WebhookEventStore
from storefront.services.webhook_handler import WebhookHandler


@lru_cache
def get_settings_service() -> SettingsService:
    return SettingsService(
        db=get_dynamodb_service(),
        processor_name=get_app_config().processor_name,
    )


@lru_cache
def get_transaction_store() -> TransactionStore:
    return TransactionStore(db=get_dynamodb_service())


@lru_cache
def get_order_store() -> OrderStore:
    return OrderStore(db=get_dynamodb_service())


@lru_cache
def get_webhook_event_store() -> WebhookEventStore:
    return WebhookEventStore(db=get_dynamodb_service())


@lru_cache
def get_intent_service() -> PaymentIntentService:
    """Get cached PaymentIntentService instance."""
    return PaymentIntentService(
        settings=get_settings_service(),
        transactions=get_transaction_store(),
        app_config=get_app_config(),
    )


@lru_cache
def get_verification_service() -> VerificationService:
    """Get cached VerificationService instance."""
    return VerificationService(
        settings=get_settings_service(),
        transactions=get_transaction_store(),
        orders=get_order_store(),
    )


@lru_cache
def get_webhook_handler() -> WebhookHandler:
    """Get cached WebhookHandler instance."""
    return WebhookHandler(
        settings=get_settings_service(),
        transactions=get_transaction_store(),
        orders=get_order_store(),
        events=get_webhook_event_store(),
        app_config=get_app_config(),
    )


def reset_services() -> None:
    """Clear all cached service instances.

    Call this in test fixtures to ensure clean state between tests.
    Also resets the underlying DynamoDB singleton and the process config.
    """
    get_settings_service.cache_clear()
    get_transaction_store.cache_clear()
    get_order_store.cache_clear()
    get_webhook_event_store.cache_clear()
    get_intent_service.cache_clear()
    get_verification_service.cache_clear()
    get_webhook_handler.cache_clear()

    reset_dynamodb_service()
    get_app_config.cache_clear()
