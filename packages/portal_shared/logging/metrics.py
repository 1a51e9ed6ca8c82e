"""OpenTelemetry-backed metrics for outbound HTTP calls.

Instruments are resolved from the global OTel meter provider. Without an SDK
configured by the host, the OTel API hands out no-op instruments, so recording
is always safe.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Mapping, Protocol

from opentelemetry import metrics as otel_metrics

from . import fields

METER_NAME = "portal.http"
METRIC_REQUESTS_TOTAL = "portal_http_requests_total"
METRIC_REQUEST_DURATION_MS = "portal_http_request_duration_ms"
METRIC_RETRIES_TOTAL = "portal_http_retries_total"


class CounterLike(Protocol):
    """Minimal counter interface used by ``HttpMetrics``."""

    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None:
        """Record one counter increment with attributes."""


class HistogramLike(Protocol):
    """Minimal histogram interface used by ``HttpMetrics``."""

    def record(self, amount: float, attributes: Mapping[str, str]) -> None:
        """Record one sample with attributes."""


class HttpMetrics:
    """Counters and histograms for request outcomes, latency, and retries."""

    def __init__(
        self,
        *,
        requests_total: CounterLike,
        request_duration_ms: HistogramLike,
        retries_total: CounterLike,
    ) -> None:
        self._requests_total = requests_total
        self._request_duration_ms = request_duration_ms
        self._retries_total = retries_total

    def record_response(self, *, method: str, outcome: str, duration_ms: float) -> None:
        """Record one completed attempt and its latency."""
        self._requests_total.add(
            1, attributes={fields.METHOD: method, fields.OUTCOME: outcome}
        )
        self._request_duration_ms.record(
            duration_ms, attributes={fields.METHOD: method}
        )

    def record_retry(self, *, method: str) -> None:
        """Record one scheduled retry."""
        self._retries_total.add(1, attributes={fields.METHOD: method})


@lru_cache(maxsize=1)
def default_http_metrics() -> HttpMetrics:
    """Build process-wide HTTP metrics from the global OTel meter provider."""
    meter = otel_metrics.get_meter(METER_NAME)
    return HttpMetrics(
        requests_total=meter.create_counter(
            name=METRIC_REQUESTS_TOTAL,
            description="Count of outbound HTTP attempts by method/outcome.",
            unit="1",
        ),
        request_duration_ms=meter.create_histogram(
            name=METRIC_REQUEST_DURATION_MS,
            description="Outbound HTTP attempt latency in milliseconds.",
            unit="ms",
        ),
        retries_total=meter.create_counter(
            name=METRIC_RETRIES_TOTAL,
            description="Count of retries scheduled by the retry controller.",
            unit="1",
        ),
    )
