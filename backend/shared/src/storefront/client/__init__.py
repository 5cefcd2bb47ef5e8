"""Client helper for the checkout flow."""

from .checkout import (
    SUPPORT_MESSAGE,
    CheckoutClient,
    CheckoutError,
    PaymentIntentCredentials,
    VerificationResult,
    intent_id_from_return_url,
)

__all__ = [
    "SUPPORT_MESSAGE",
    "CheckoutClient",
    "CheckoutError",
    "PaymentIntentCredentials",
    "VerificationResult",
    "intent_id_from_return_url",
]
