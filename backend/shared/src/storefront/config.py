"""Process configuration read from environment variables.

Processor credentials are deliberately absent here: they live in the
settings table and are resolved per request by ``SettingsService``.
"""

import os
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class AppConfig(BaseModel):
    """Immutable process configuration."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment name")
    table_prefix: str = Field(..., description="Prefix for all DynamoDB table names")
    allowed_origins: tuple[str, ...] = Field(default=("*",))
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    processor_name: str = Field(default="stripe")
    store_timeout_seconds: float = Field(default=30.0, gt=0)
    webhook_tolerance_seconds: int = Field(default=300, gt=0)
    log_level: str = Field(default="INFO")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from the current environment."""
        environment = os.getenv("ENVIRONMENT", "dev")
        origins = os.getenv("ALLOWED_ORIGINS", "*")
        return cls(
            environment=environment,
            table_prefix=os.getenv("DYNAMODB_TABLE_PREFIX", f"storefront-{environment}"),
            allowed_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            default_currency=os.getenv("DEFAULT_CURRENCY", "USD").upper(),
            processor_name=os.getenv("PAYMENT_PROCESSOR_NAME", "stripe"),
            store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "30")),
            webhook_tolerance_seconds=int(os.getenv("WEBHOOK_TOLERANCE_SECONDS", "300")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """Get the process configuration (read once).

    Tests that change the environment call ``get_app_config.cache_clear()``.
    """
    return AppConfig.from_env()
