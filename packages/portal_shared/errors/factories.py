"""Factory helpers for creating consistent error details."""

from __future__ import annotations

from typing import Any

from . import codes
from .types import ErrorDetail, ErrorKind


def validation_error(
    message: str,
    *,
    code: str = codes.VALIDATION_ERROR,
) -> ErrorDetail:
    """Create a validation error for a failed synchronous precondition."""
    return ErrorDetail(message=message, kind=ErrorKind.VALIDATION, code=code)


def server_error(
    status: int,
    *,
    message: str | None = None,
    payload: Any | None = None,
) -> ErrorDetail:
    """Create an error for a remote that answered with a non-2xx status."""
    return ErrorDetail(
        message=message or "Server error",
        kind=ErrorKind.SERVER,
        status=status,
        code=codes.UNAUTHORIZED if status == 401 else codes.SERVER_ERROR,
        payload=payload,
    )


def timeout_error(message: str = "No response from server") -> ErrorDetail:
    """Create an error for a request that was sent but never answered."""
    return ErrorDetail(
        message=message,
        kind=ErrorKind.TIMEOUT,
        status=0,
        code=codes.NO_RESPONSE,
    )


def network_error(message: str = "Network error during upload") -> ErrorDetail:
    """Create an error for a transfer that never reached or returned from the remote."""
    return ErrorDetail(
        message=message,
        kind=ErrorKind.NETWORK,
        code=codes.UPLOAD_NETWORK_FAILURE,
    )


def upload_error(status: int) -> ErrorDetail:
    """Create an error for a storage provider rejecting a direct transfer."""
    return ErrorDetail(
        message=f"Upload failed with status {status}",
        kind=ErrorKind.UPLOAD,
        status=status,
        code=codes.UPLOAD_FAILED,
    )


def upload_aborted_error(message: str = "Upload aborted") -> ErrorDetail:
    """Create an error for a caller-cancelled transfer."""
    return ErrorDetail(
        message=message,
        kind=ErrorKind.UPLOAD_ABORTED,
        code=codes.UPLOAD_ABORTED,
    )


def retry_limit_error(message: str = "Maximum retries exceeded") -> ErrorDetail:
    """Create an error for a retry loop that ran out of attempts."""
    return ErrorDetail(
        message=message,
        kind=ErrorKind.RETRY_LIMIT,
        code=codes.RETRY_LIMIT_EXCEEDED,
    )


def unknown_error(
    message: str,
    *,
    code: str = codes.UNEXPECTED_EXCEPTION,
    payload: Any | None = None,
) -> ErrorDetail:
    """Create an uncategorized error."""
    return ErrorDetail(
        message=message,
        kind=ErrorKind.UNKNOWN,
        code=code,
        payload=payload,
    )
