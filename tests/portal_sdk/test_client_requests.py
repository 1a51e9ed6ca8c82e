"""Behavior tests for ApiClient verbs, interceptors, retries, and caching."""

from __future__ import annotations

import asyncio
import json
import logging
import time

import httpx
import pytest

from packages.portal_sdk.retry import RetryPolicy
from packages.portal_shared.config import PortalSettings
from packages.portal_shared.envelope import Failure, Success
from packages.portal_shared.errors import ErrorKind, codes


def test_get_returns_success_with_decoded_body_and_bearer_header(harness_factory) -> None:
    """GET should inject the stored token and return the decoded JSON body."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 7, "name": "Ada"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/user/profile", {"expand": "skills"})

    result = asyncio.run(run())

    assert isinstance(result, Success)
    assert result.success is True
    assert result.data == {"id": 7, "name": "Ada"}
    assert result.status == 200
    assert seen[0].headers["Authorization"] == "Bearer token-1"
    assert seen[0].headers["Accept"] == "application/json"
    assert seen[0].url.params["expand"] == "skills"


def test_post_round_trips_json_payload(harness_factory) -> None:
    """A remote echoing the body should yield data equal to the sent payload."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(201, json=json.loads(request.content))

    harness = harness_factory(handler)
    payload = {"title": "Backend engineer", "tags": ["python", "httpx"], "remote": True}

    async def run() -> object:
        async with harness.client as client:
            return await client.post("/applications", payload)

    result = asyncio.run(run())

    assert isinstance(result, Success)
    assert result.status == 201
    assert result.data == payload


def test_post_without_payload_sends_empty_object(harness_factory) -> None:
    bodies: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(request.content)
        return httpx.Response(204)

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.post("/auth/logout")

    result = asyncio.run(run())

    assert isinstance(result, Success)
    assert result.data is None
    assert json.loads(bodies[0]) == {}


def test_request_without_token_sends_no_authorization_header(harness_factory) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[])

    harness = harness_factory(handler, token=None)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/jobs")

    asyncio.run(run())

    assert "Authorization" not in seen[0].headers


def test_client_error_is_returned_after_one_attempt(harness_factory) -> None:
    """4xx responses should never be retried."""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404, json={"message": "Job not found"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/jobs/missing")

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.kind == ErrorKind.SERVER
    assert result.error.status == 404
    assert result.error.message == "Job not found"
    assert result.error.payload == {"message": "Job not found"}
    assert calls == 1
    assert harness.sleep.delays == []


def test_transient_failures_retry_with_exponential_backoff(harness_factory) -> None:
    """Two 503s then a 200 should succeed on the third attempt after 1s and 2s waits."""
    statuses = iter([503, 503, 200])
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        status = next(statuses)
        if status == 200:
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(status, text="unavailable")

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/user/events")

    result = asyncio.run(run())

    assert isinstance(result, Success)
    assert result.data == {"ok": True}
    assert calls == 3
    assert harness.sleep.delays == [1.0, 2.0]
    assert len(harness.retries_total.calls) == 2
    assert harness.retries_total.calls[0] == (1, {"method": "GET"})


def test_exhausted_retries_return_last_server_failure(harness_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503, text="unavailable")

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.delete("/user/events/9")

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.kind == ErrorKind.SERVER
    assert result.error.status == 503
    assert result.error.message == "Server error"
    assert calls == 3


def test_per_call_retry_policy_overrides_default(harness_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(500, json={"message": "boom"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.put(
                "/user/profile",
                {"name": "Ada"},
                retry_policy=RetryPolicy(max_attempts=0),
            )

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.message == "boom"
    assert calls == 1
    assert harness.sleep.delays == []


def test_missing_response_maps_to_timeout_failure(harness_factory) -> None:
    """A request that gets no answer should become TimeoutError with status 0."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/user/application-status")

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.kind == ErrorKind.TIMEOUT
    assert result.error.status == 0
    assert result.error.message == "No response from server"
    assert result.error.code == codes.NO_RESPONSE
    assert harness.sleep.delays == [1.0, 2.0]


def test_every_attempt_carries_the_baseline_timeout(harness_factory) -> None:
    timeouts: list[dict[str, float]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        timeouts.append(request.extensions["timeout"])
        return httpx.Response(503, json={"message": "busy"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/user/upcoming-events")

    asyncio.run(run())

    assert len(timeouts) == 3
    for timeout in timeouts:
        assert timeout == {"connect": 15.0, "read": 15.0, "write": 15.0, "pool": 15.0}


def test_request_that_cannot_be_sent_raises_after_final_attempt(harness_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        raise httpx.UnsupportedProtocol("bad scheme", request=request)

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/jobs")

    with pytest.raises(httpx.UnsupportedProtocol):
        asyncio.run(run())
    assert calls == 3


def test_unauthorized_response_clears_credentials_and_navigates_once(harness_factory) -> None:
    """401 outside auth endpoints should drop the token and request the login page."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Token expired"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/user/profile")

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.status == 401
    assert result.error.code == codes.UNAUTHORIZED
    assert harness.credentials.get() is None
    assert harness.navigator.paths == ["/login"]


def test_unauthorized_auth_endpoint_clears_credentials_without_navigation(
    harness_factory,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "Invalid credentials"})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.post("/auth/login", {"email": "a@b.co", "password": "x"})

    result = asyncio.run(run())

    assert isinstance(result, Failure)
    assert result.error.message == "Invalid credentials"
    assert harness.credentials.get() is None
    assert harness.navigator.paths == []


def test_metrics_record_outcome_and_latency(harness_factory) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={})

    harness = harness_factory(handler)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/jobs")

    asyncio.run(run())

    assert harness.requests_total.calls == [(1, {"method": "GET", "outcome": "success"})]
    assert len(harness.request_duration_ms.calls) == 1
    assert harness.request_duration_ms.calls[0][0] >= 0


def test_slow_request_logs_warning(
    harness_factory,
    caplog: pytest.LogCaptureFixture,
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        time.sleep(0.02)
        return httpx.Response(200, json={})

    settings = PortalSettings(
        http={"base_url": "https://api.portal.test", "slow_request_threshold_ms": 1}
    )
    harness = harness_factory(handler, settings=settings)

    async def run() -> object:
        async with harness.client as client:
            return await client.get("/jobs")

    with caplog.at_level(logging.WARNING, logger="packages.portal_sdk.interceptors"):
        result = asyncio.run(run())

    assert isinstance(result, Success)
    assert any("Slow request" in record.getMessage() for record in caplog.records)


def test_cached_get_is_served_without_second_transport_call(harness_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(200, json={"calls": calls})

    harness = harness_factory(handler)

    async def run() -> tuple[object, object, object]:
        async with harness.client as client:
            first = await client.get("/jobs", {"page": 1}, use_cache=True)
            second = await client.get("/jobs", {"page": 1}, use_cache=True)
            client.clear_cache()
            third = await client.get("/jobs", {"page": 1}, use_cache=True)
            return first, second, third

    first, second, third = asyncio.run(run())

    assert first == second
    assert isinstance(third, Success)
    assert third.data == {"calls": 2}
    assert calls == 2


def test_failed_get_is_never_cached(harness_factory) -> None:
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(404, json={"message": "missing"})

    harness = harness_factory(handler)

    async def run() -> None:
        async with harness.client as client:
            await client.get("/jobs/1", use_cache=True)
            await client.get("/jobs/1", use_cache=True)

    asyncio.run(run())

    assert calls == 2
