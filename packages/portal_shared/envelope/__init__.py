"""Public shared envelope API for the Portal SDK."""

from .builders import failure, failure_from_exception, success, validation_failure
from .envelope import Envelope, Failure, Success

__all__ = [
    "Envelope",
    "Failure",
    "Success",
    "failure",
    "failure_from_exception",
    "success",
    "validation_failure",
]
