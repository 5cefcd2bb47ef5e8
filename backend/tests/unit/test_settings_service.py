"""Unit tests for SettingsService credential resolution (moto-backed)."""

from typing import Any, Callable

import pytest

from storefront.models import ConfigurationError
from storefront.services.settings_service import SettingsService, parse_test_mode

# Values written by the seed_settings fixture
TEST_PROCESSOR_ID = "proc-stripe-0001"
TEST_SECRET_KEY = "sk_test_abc123xyz"
TEST_WEBHOOK_SECRET = "whsec_test_secret123"


class TestParseTestMode:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (True, True),
            (False, False),
            ("true", True),
            ("TRUE", True),
            (" True ", True),
            ("false", False),
            ("yes", False),
            (1, False),
            (None, False),
        ],
    )
    def test_only_true_selects_test_mode(self, value: Any, expected: bool) -> None:
        assert parse_test_mode(value) is expected


class TestResolveStripeConfig:
    def test_resolves_all_fields(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings()
        config = SettingsService(db).resolve_stripe_config(require_webhook_secret=True)

        assert config.processor_id == TEST_PROCESSOR_ID
        assert config.secret_key.get_secret_value() == TEST_SECRET_KEY
        assert config.webhook_secret is not None
        assert config.webhook_secret.get_secret_value() == TEST_WEBHOOK_SECRET
        assert config.test_mode is True

    def test_string_false_is_live_mode(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings(test_mode="false")
        assert SettingsService(db).resolve_stripe_config().test_mode is False

    def test_missing_secret_key(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings(secret_key=None)
        with pytest.raises(ConfigurationError, match="secret key"):
            SettingsService(db).resolve_stripe_config()

    def test_blank_secret_key(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings(secret_key="   ")
        with pytest.raises(ConfigurationError):
            SettingsService(db).resolve_stripe_config()

    def test_webhook_secret_optional_unless_required(
        self, db: Any, seed_settings: Callable[..., None]
    ) -> None:
        seed_settings(webhook_secret=None)
        service = SettingsService(db)

        assert service.resolve_stripe_config().webhook_secret is None
        with pytest.raises(ConfigurationError, match="webhook secret"):
            service.resolve_stripe_config(require_webhook_secret=True)

    def test_unregistered_processor(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings(register_processor=False)
        with pytest.raises(ConfigurationError, match="not registered"):
            SettingsService(db).resolve_stripe_config()

    def test_secrets_hidden_in_repr(self, db: Any, seed_settings: Callable[..., None]) -> None:
        seed_settings()
        config = SettingsService(db).resolve_stripe_config()
        assert TEST_SECRET_KEY not in repr(config)

    def test_rotated_key_is_read_on_next_call(
        self, db: Any, seed_settings: Callable[..., None]
    ) -> None:
        """Nothing is cached between calls."""
        seed_settings()
        service = SettingsService(db)
        service.resolve_stripe_config()

        seed_settings(secret_key="sk_test_rotated")
        assert service.resolve_stripe_config().secret_key.get_secret_value() == "sk_test_rotated"
