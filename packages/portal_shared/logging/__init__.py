"""Public logging API for the Portal SDK.

Request-scoped structured fields for the pipeline's log lines, an opt-in
stdout handler for hosts, and OTel metrics for HTTP calls.
"""

from .config import configure_logging
from .context import current_fields, log_context
from .metrics import HttpMetrics, default_http_metrics

__all__ = [
    "configure_logging",
    "current_fields",
    "default_http_metrics",
    "HttpMetrics",
    "log_context",
]
