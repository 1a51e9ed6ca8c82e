"""Tests for request-scoped log fields, the host handler, and HTTP metrics."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Mapping

from packages.portal_shared.config import LoggingSettings
from packages.portal_shared.errors import ErrorKind
from packages.portal_shared.logging import (
    HttpMetrics,
    configure_logging,
    current_fields,
    default_http_metrics,
    log_context,
)
from packages.portal_shared.logging.config import (
    REDACTED,
    ContextFilter,
    PortalFormatter,
    PortalStreamHandler,
)


class _Recorder:
    def __init__(self) -> None:
        self.calls: list[tuple[float, dict[str, str]]] = []

    def add(self, amount: float, attributes: Mapping[str, str]) -> None:
        self.calls.append((amount, dict(attributes)))

    def record(self, amount: float, attributes: Mapping[str, str]) -> None:
        self.calls.append((amount, dict(attributes)))


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="packages.portal_sdk.client",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )


def test_log_context_stacks_renders_and_restores_fields() -> None:
    with log_context({"request_id": "r-1", "status": None}):
        with log_context(
            {"attempt": 2, "duration_ms": 1234.567, "error_kind": ErrorKind.TIMEOUT}
        ) as bound:
            assert bound == {
                "request_id": "r-1",
                "attempt": "2",
                "duration_ms": "1234.6",
                "error_kind": "TimeoutError",
            }
        assert current_fields() == {"request_id": "r-1"}

    assert current_fields() == {}


def test_log_context_is_isolated_between_tasks() -> None:
    seen: dict[str, dict[str, str]] = {}

    async def chain(request_id: str) -> None:
        with log_context({"request_id": request_id}):
            await asyncio.sleep(0)
            seen[request_id] = dict(current_fields())

    async def run() -> None:
        await asyncio.gather(chain("a"), chain("b"))

    asyncio.run(run())

    assert seen == {"a": {"request_id": "a"}, "b": {"request_id": "b"}}


def test_json_output_merges_host_and_request_fields_and_masks_credentials() -> None:
    record = _record("Slow request")
    with log_context({"request_id": "r-9", "url": "/jobs", "password": "hunter2"}):
        ContextFilter({"service": "portal", "environment": "test"}).filter(record)

    payload = json.loads(PortalFormatter(json_output=True).format(record))

    assert payload["message"] == "Slow request"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "portal"
    assert payload["environment"] == "test"
    assert payload["request_id"] == "r-9"
    assert payload["url"] == "/jobs"
    assert payload["password"] == REDACTED


def test_plain_output_appends_sorted_fields() -> None:
    record = _record("Retrying request")
    with log_context({"url": "/jobs", "attempt": 1}):
        ContextFilter().filter(record)

    line = PortalFormatter(json_output=False).format(record)

    assert line.endswith("WARNING packages.portal_sdk.client Retrying request attempt=1 url=/jobs")


def test_http_metrics_record_attributes() -> None:
    requests_total = _Recorder()
    duration = _Recorder()
    retries = _Recorder()
    metrics = HttpMetrics(
        requests_total=requests_total,
        request_duration_ms=duration,
        retries_total=retries,
    )

    metrics.record_response(method="POST", outcome="failure", duration_ms=12.5)
    metrics.record_retry(method="POST")

    assert requests_total.calls == [(1, {"method": "POST", "outcome": "failure"})]
    assert duration.calls == [(12.5, {"method": "POST"})]
    assert retries.calls == [(1, {"method": "POST"})]


def test_configure_logging_replaces_only_its_own_handler() -> None:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level
    host_handler = logging.NullHandler()
    root.addHandler(host_handler)
    settings = LoggingSettings(level="WARNING", json_output=False, environment="test")
    try:
        first = configure_logging(settings)
        second = configure_logging(settings)

        portal_handlers = [h for h in root.handlers if isinstance(h, PortalStreamHandler)]
        assert portal_handlers == [second]
        assert first not in root.handlers
        assert host_handler in root.handlers
        assert isinstance(second.formatter, PortalFormatter)
        assert root.level == logging.WARNING

        record = _record("Upload aborted")
        assert second.filter(record)
        assert record.portal_fields == {"service": "portal", "environment": "test"}
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_default_http_metrics_is_shared_and_safe_without_sdk() -> None:
    metrics = default_http_metrics()

    metrics.record_response(method="GET", outcome="success", duration_ms=1.0)
    metrics.record_retry(method="GET")

    assert default_http_metrics() is metrics
