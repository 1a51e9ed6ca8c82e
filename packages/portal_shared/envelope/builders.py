"""Convenience constructors for typed envelopes."""

from __future__ import annotations

from typing import Mapping, TypeVar

from packages.portal_shared.errors import (
    ErrorDetail,
    exception_to_error,
    validation_error,
)

from .envelope import Failure, Success


T = TypeVar("T")


def success(
    data: T,
    *,
    status: int = 200,
    headers: Mapping[str, str] | None = None,
) -> Success[T]:
    """Build a success envelope carrying ``data`` unchanged."""
    return Success(data=data, status=status, headers=dict(headers or {}))


def failure(error: ErrorDetail) -> Failure:
    """Build a failure envelope from one error detail."""
    return Failure(error=error)


def validation_failure(message: str, *, code: str | None = None) -> Failure:
    """Build a validation failure synchronously, without touching I/O."""
    if code is None:
        return Failure(error=validation_error(message))
    return Failure(error=validation_error(message, code=code))


def failure_from_exception(exc: Exception, *, fallback: str) -> Failure:
    """Normalize an unexpected exception into a failure envelope."""
    return Failure(error=exception_to_error(exc, fallback=fallback))
