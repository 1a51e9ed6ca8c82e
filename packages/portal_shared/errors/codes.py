"""Shared error code constants.

Codes are stable machine-readable identifiers attached to ``ErrorDetail.code``.
Kinds describe where a failure came from; codes narrow down what happened.
"""

# Validation
VALIDATION_ERROR = "VALIDATION_ERROR"
MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
INVALID_FORMAT = "INVALID_FORMAT"
INVALID_FILE = "INVALID_FILE"

# Remote origin
SERVER_ERROR = "SERVER_ERROR"
UNAUTHORIZED = "UNAUTHORIZED"
NO_RESPONSE = "NO_RESPONSE"

# Storage transfer
UPLOAD_FAILED = "UPLOAD_FAILED"
UPLOAD_ABORTED = "UPLOAD_ABORTED"
UPLOAD_NETWORK_FAILURE = "UPLOAD_NETWORK_FAILURE"
INVALID_PRESIGNED_DESCRIPTOR = "INVALID_PRESIGNED_DESCRIPTOR"

# Pipeline
RETRY_LIMIT_EXCEEDED = "RETRY_LIMIT_EXCEEDED"
UNEXPECTED_EXCEPTION = "UNEXPECTED_EXCEPTION"
