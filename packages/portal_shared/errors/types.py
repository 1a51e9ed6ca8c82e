"""Canonical error types for Portal SDK envelopes.

This module defines the closed error taxonomy and the error shape carried by
every ``Failure`` envelope returned from the request pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced to SDK callers."""

    VALIDATION = "ValidationError"
    NETWORK = "NetworkError"
    TIMEOUT = "TimeoutError"
    SERVER = "ServerError"
    UPLOAD = "UploadError"
    UPLOAD_ABORTED = "UploadAbortedError"
    RETRY_LIMIT = "RetryLimitError"
    UNKNOWN = "UnknownError"


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error object carried by failure envelopes."""

    message: str
    kind: ErrorKind
    status: int | None = None
    code: str | None = None
    payload: Any | None = None

    @property
    def is_client_error(self) -> bool:
        """Return ``True`` when the remote rejected the request with a 4xx."""
        return self.status is not None and 400 <= self.status < 500
