"""Exception normalization for the services' last-resort error net."""

from __future__ import annotations

from . import codes
from .factories import unknown_error
from .types import ErrorDetail


def exception_to_error(exc: Exception, *, fallback: str = "unexpected exception") -> ErrorDetail:
    """Normalize an unexpected Python exception into an ``UnknownError``.

    Caller input problems never reach here; services report those as
    validation failures before calling the pipeline. The exception type name
    is kept in the payload so faults can still be told apart in logs.
    """
    return unknown_error(
        str(exc) or fallback,
        code=codes.UNEXPECTED_EXCEPTION,
        payload={"exception_type": type(exc).__name__},
    )
