"""Translation of processor intent statuses into local state.

Both reconciliation paths (verification and webhooks) write transaction
and order statuses only through these functions.
"""

from decimal import ROUND_HALF_UP, Decimal

from storefront.models.enums import OrderStatus, PaymentIntentStatus, TransactionStatus

_INTENT_TO_TRANSACTION: dict[str, TransactionStatus] = {
    PaymentIntentStatus.SUCCEEDED.value: TransactionStatus.SUCCEEDED,
    PaymentIntentStatus.CANCELED.value: TransactionStatus.CANCELLED,
    PaymentIntentStatus.PROCESSING.value: TransactionStatus.PROCESSING,
}

_CONFIRMING_STATUSES = frozenset(
    {PaymentIntentStatus.SUCCEEDED.value, PaymentIntentStatus.REQUIRES_CAPTURE.value}
)
_CANCELLING_STATUSES = frozenset(
    {PaymentIntentStatus.CANCELED.value, PaymentIntentStatus.REQUIRES_PAYMENT_METHOD.value}
)
_PROVISIONAL_SUCCESS_STATUSES = frozenset(
    {
        PaymentIntentStatus.SUCCEEDED.value,
        PaymentIntentStatus.PROCESSING.value,
        PaymentIntentStatus.REQUIRES_CAPTURE.value,
    }
)

# Currencies Stripe charges in whole units
ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }
)


def map_intent_status(raw_status: str | None) -> TransactionStatus:
    """Map a processor intent status to the local transaction status.

    succeeded -> succeeded, canceled -> cancelled, processing -> processing,
    anything else (including None) -> failed.
    """
    return _INTENT_TO_TRANSACTION.get(raw_status or "", TransactionStatus.FAILED)


def order_status_for_intent(raw_status: str | None) -> OrderStatus | None:
    """Order status implied by a processor intent status, or None to leave it."""
    if raw_status in _CONFIRMING_STATUSES:
        return OrderStatus.CONFIRMED
    if raw_status in _CANCELLING_STATUSES:
        return OrderStatus.CANCELLED
    return None


def is_provisional_success(raw_status: str | None) -> bool:
    """True when the client may treat the payment as accepted."""
    return raw_status in _PROVISIONAL_SUCCESS_STATUSES


def stamps_processed_at(raw_status: str | None) -> bool:
    return map_intent_status(raw_status) is TransactionStatus.SUCCEEDED


def stamps_failed_at(raw_status: str | None) -> bool:
    return raw_status in _CANCELLING_STATUSES


def verification_message(raw_status: str | None) -> str:
    """Human-readable verification message."""
    if raw_status == PaymentIntentStatus.SUCCEEDED.value:
        return "Payment successful"
    return f"Payment {raw_status or 'unknown'}"


def normalize_currency(currency: str) -> str:
    """Normalize a currency code to uppercase ISO 4217."""
    return currency.strip().upper()


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Convert a major-unit amount to the processor's integer minor units.

    Rounds half up to the nearest minor unit (49.995 USD -> 5000).
    """
    if normalize_currency(currency) in ZERO_DECIMAL_CURRENCIES:
        scaled = amount
    else:
        scaled = amount * 100
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
