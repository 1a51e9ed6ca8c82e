"""Canonical logging field names for the request pipeline.

Keeping names centralized keeps structured log lines and metric attributes
aligned across the interceptor chain, retry controller, and upload flow.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Request correlation fields.
REQUEST_ID = "request_id"
METHOD = "method"
URL = "url"
STATUS = "status"
DURATION_MS = "duration_ms"
ATTEMPT = "attempt"
MAX_ATTEMPTS = "max_attempts"
DELAY_MS = "delay_ms"
OUTCOME = "outcome"
ERROR_KIND = "error_kind"

# Event names.
HTTP_SLOW_REQUEST_EVENT = "http_slow_request"
HTTP_FAILURE_EVENT = "http_failure"
HTTP_RETRY_EVENT = "http_retry"
UNAUTHORIZED_EVENT = "unauthorized"
UPLOAD_TRANSITION_EVENT = "upload_transition"

# Upload fields.
UPLOAD_TYPE = "upload_type"
UPLOAD_STATE = "upload_state"
FILE_KEY = "file_key"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
