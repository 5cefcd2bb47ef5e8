"""Processor configuration resolved from the settings store."""

from pydantic import BaseModel, ConfigDict, Field, SecretStr

# Keys in the settings table
STRIPE_SECRET_KEY = "stripe_secret_key"
STRIPE_WEBHOOK_SECRET = "stripe_webhook_secret"
STRIPE_TEST_MODE = "stripe_test_mode"


class StripeConfig(BaseModel):
    """Credentials and mode for one request's processor calls.

    Resolved once per request and passed explicitly to the services;
    never cached process-wide.
    """

    model_config = ConfigDict(frozen=True)

    processor_id: str = Field(..., description="Registry ID of the payment processor")
    secret_key: SecretStr = Field(..., description="Stripe secret API key")
    webhook_secret: SecretStr | None = Field(
        default=None,
        description="Webhook signing secret (whsec_...)",
    )
    test_mode: bool = Field(default=True, description="True when using test keys")
