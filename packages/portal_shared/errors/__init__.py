"""Public shared error API for the Portal SDK."""

from . import codes
from .factories import (
    network_error,
    retry_limit_error,
    server_error,
    timeout_error,
    unknown_error,
    upload_aborted_error,
    upload_error,
    validation_error,
)
from .normalize import exception_to_error
from .types import ErrorDetail, ErrorKind

__all__ = [
    "ErrorDetail",
    "ErrorKind",
    "codes",
    "exception_to_error",
    "network_error",
    "retry_limit_error",
    "server_error",
    "timeout_error",
    "unknown_error",
    "upload_aborted_error",
    "upload_error",
    "validation_error",
]
