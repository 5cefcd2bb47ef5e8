"""Explicit success/error results returned by service operations.

Services unwind internally with ``PaymentError`` subclasses and convert
them to ``Err`` at their public boundary, so callers branch on a value
instead of catching exceptions:

    result = verification_service.verify(request)
    if isinstance(result, Err):
        return error_response(result.error)
    outcome = result.value
"""

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict

from .errors import ServiceError

T = TypeVar("T")


class Ok(BaseModel, Generic[T]):
    """Successful service result wrapping the operation's value."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ok: Literal[True] = True
    value: T


class Err(BaseModel):
    """Failed service result carrying a serializable error."""

    model_config = ConfigDict(frozen=True)

    ok: Literal[False] = False
    error: ServiceError
