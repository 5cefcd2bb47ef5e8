"""Logging with a per-request correlation id.

The id lives in a ContextVar so it follows the request through sync service
code and threadpool hops. Every record gets a ``correlation_id`` attribute and
the formatter prefixes it, so one checkout can be followed across the intent,
verification and webhook calls with a single grep.
"""

import logging
import re
import uuid
from contextvars import ContextVar
from typing import Any

NO_CORRELATION_ID = "no-correlation-id"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Ids supplied by callers end up in every log line; keep them printable and short.
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def generate_correlation_id() -> str:
    return uuid.uuid4().hex


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation id to the current context and return it.

    A missing or malformed id is replaced by a freshly generated one.
    """
    if not correlation_id or not _VALID_CORRELATION_ID.match(correlation_id):
        correlation_id = generate_correlation_id()
    _correlation_id.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def clear_correlation_id() -> None:
    _correlation_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Stamp ``correlation_id`` onto every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


class StructuredFormatter(logging.Formatter):
    """Prefix each line with ``[correlation_id]``."""

    def format(self, record: logging.LogRecord) -> str:
        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id is None:
            correlation_id = get_correlation_id() or NO_CORRELATION_ID
            record.correlation_id = correlation_id
        return f"[{correlation_id}] {super().format(record)}"


def configure_logging(level: str = "INFO") -> None:
    """Install the structured formatter on the root logger.

    Idempotent: a stream handler is only added when the root logger has none
    (Lambda installs its own), and every existing handler gets the formatter.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())
    if not root.handlers:
        root.addHandler(logging.StreamHandler())
    for handler in root.handlers:
        handler.setFormatter(StructuredFormatter(LOG_FORMAT))


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not any(isinstance(f, CorrelationIdFilter) for f in logger.filters):
        logger.addFilter(CorrelationIdFilter())
    return logger


def _context(**fields: Any) -> dict[str, Any]:
    # Zero amounts are meaningful; empty strings and None are not.
    return {k: v for k, v in fields.items() if v is not None and v != ""}


def log_payment_operation(
    logger: logging.Logger,
    operation: str,
    *,
    order_id: str | None = None,
    transaction_id: str | None = None,
    payment_intent_id: str | None = None,
    amount_minor: int | None = None,
    status: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log one step of intent creation or verification.

    Emitted at ERROR when ``error`` is set, INFO otherwise. The fields are
    attached to the record as ``extra`` and rendered as ``key=value`` pairs.

    Args:
        logger: Logger to emit on.
        operation: Step name, e.g. ``create_intent`` or ``verify_intent``.
        order_id: Order being paid for.
        transaction_id: Local transaction id.
        payment_intent_id: Processor intent id.
        amount_minor: Amount in the currency's minor unit.
        status: Processor or local status.
        error: Error code or message when the step failed.
        **extra: Any further context.
    """
    context = _context(
        order_id=order_id,
        transaction_id=transaction_id,
        payment_intent_id=payment_intent_id,
        amount_minor=amount_minor,
        status=status,
        error=error,
        **extra,
    )
    pairs = " | ".join(f"{key}={value}" for key, value in context.items())
    message = f"Payment operation: {operation}" + (f" | {pairs}" if pairs else "")

    logger.log(
        logging.ERROR if error else logging.INFO,
        message,
        extra={"operation": operation, **context},
    )


def log_webhook_event(
    logger: logging.Logger,
    event_type: str,
    event_id: str,
    *,
    transaction_id: str | None = None,
    order_id: str | None = None,
    result: str | None = None,
    error: str | None = None,
    **extra: Any,
) -> None:
    """Log a webhook delivery and what became of it.

    ``result`` picks the level: ``error`` logs at ERROR, ``duplicate`` and
    ``ignored`` at WARNING, anything else at INFO.
    """
    context = _context(
        transaction_id=transaction_id,
        order_id=order_id,
        result=result,
        error=error,
        **extra,
    )
    summary = [f"Webhook event: {event_type} ({event_id})"]
    summary += [f"{key}={context[key]}" for key in ("result", "order_id", "error") if key in context]

    if result == "error":
        level = logging.ERROR
    elif result in ("duplicate", "ignored"):
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        " | ".join(summary),
        extra={"event_type": event_type, "event_id": event_id, **context},
    )
