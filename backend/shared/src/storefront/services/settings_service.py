"""Settings store access for processor credentials.

Credentials are read on every request and returned as an immutable
``StripeConfig`` that callers pass explicitly to the payment services.
Nothing is cached between requests, so rotating a key in the settings
table takes effect on the next call.
"""

from typing import Any

from botocore.exceptions import ClientError

from storefront.models.errors import ConfigurationError, PersistenceError
from storefront.models.settings import (
    STRIPE_SECRET_KEY,
    STRIPE_TEST_MODE,
    STRIPE_WEBHOOK_SECRET,
    StripeConfig,
)
from storefront.utils.logging import get_logger

from .dynamodb import DynamoDBService

logger = get_logger(__name__)


def parse_test_mode(value: Any) -> bool:
    """Interpret a stored ``stripe_test_mode`` value.

    Only boolean true or the string "true" (any case) select test mode.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


class SettingsService:
    """Reads key/value settings and the payment processor registry."""

    SETTINGS_TABLE = "settings"
    PROCESSORS_TABLE = "payment-processors"
    PROCESSOR_NAME_INDEX = "name-index"

    def __init__(self, db: DynamoDBService, processor_name: str = "stripe") -> None:
        """Initialize settings service.

        Args:
            db: DynamoDB service instance
            processor_name: Registry name of the processor to resolve
        """
        self.db = db
        self.processor_name = processor_name

    def get_setting(self, key: str) -> Any | None:
        """Get a raw setting value.

        Args:
            key: Setting key (e.g., "stripe_secret_key")

        Returns:
            The stored value or None if the key is absent.

        Raises:
            PersistenceError: If the settings table cannot be read.
        """
        try:
            item = self.db.get_item(self.SETTINGS_TABLE, {"key": key})
        except ClientError as e:
            logger.error("Failed to read setting %s: %s", key, e)
            raise PersistenceError(f"Failed to read setting {key}") from e
        return item.get("value") if item else None

    def get_processor_id(self) -> str:
        """Look up the registry ID of the configured processor by name.

        Raises:
            ConfigurationError: If no registry row exists for the name.
        """
        try:
            rows = self.db.query_by_gsi(
                self.PROCESSORS_TABLE,
                self.PROCESSOR_NAME_INDEX,
                "name",
                self.processor_name,
            )
        except ClientError as e:
            logger.error("Failed to read payment processor registry: %s", e)
            raise PersistenceError("Failed to read payment processor registry") from e

        if not rows:
            raise ConfigurationError(
                f"Payment processor '{self.processor_name}' is not registered"
            )
        processor_id: str = rows[0]["processor_id"]
        return processor_id

    def resolve_stripe_config(self, *, require_webhook_secret: bool = False) -> StripeConfig:
        """Resolve processor credentials for one request.

        Args:
            require_webhook_secret: Fail when the webhook signing secret is absent.

        Returns:
            StripeConfig for this request.

        Raises:
            ConfigurationError: If the secret key, processor registry row, or
                (when required) the webhook secret is missing.
        """
        secret_key = self.get_setting(STRIPE_SECRET_KEY)
        if not secret_key or not str(secret_key).strip():
            raise ConfigurationError("Stripe secret key not found in settings")

        webhook_secret = self.get_setting(STRIPE_WEBHOOK_SECRET)
        if require_webhook_secret and (not webhook_secret or not str(webhook_secret).strip()):
            raise ConfigurationError("Stripe webhook secret not found in settings")

        config = StripeConfig(
            processor_id=self.get_processor_id(),
            secret_key=str(secret_key).strip(),
            webhook_secret=str(webhook_secret).strip() if webhook_secret else None,
            test_mode=parse_test_mode(self.get_setting(STRIPE_TEST_MODE)),
        )
        logger.debug(
            "Resolved %s config (processor=%s, test_mode=%s)",
            self.processor_name,
            config.processor_id,
            config.test_mode,
        )
        return config
