"""Shared fakes for Portal SDK pipeline tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping

import httpx
import pytest

from packages.portal_sdk.client import ApiClient
from packages.portal_sdk.credentials import InMemoryCredentialStore
from packages.portal_shared.config import PortalSettings
from packages.portal_shared.logging import HttpMetrics

BASE_URL = "https://api.portal.test"

Handler = Callable[[httpx.Request], httpx.Response]


@dataclass
class FakeCounter:
    """In-memory stand-in for an OTel counter."""

    calls: list[tuple[float, dict[str, str]]] = field(default_factory=list)

    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None:
        self.calls.append((amount, dict(attributes)))


@dataclass
class FakeHistogram:
    """In-memory stand-in for an OTel histogram."""

    calls: list[tuple[float, dict[str, str]]] = field(default_factory=list)

    def record(self, amount: float, attributes: Mapping[str, str]) -> None:
        self.calls.append((amount, dict(attributes)))


@dataclass
class RecordingNavigator:
    paths: list[str] = field(default_factory=list)

    def navigate(self, path: str) -> None:
        self.paths.append(path)


@dataclass
class RecordingSleep:
    """Async sleep replacement that records requested delays in seconds."""

    delays: list[float] = field(default_factory=list)

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@dataclass
class Harness:
    """One wired client plus the fakes it was built with."""

    client: ApiClient
    credentials: InMemoryCredentialStore
    navigator: RecordingNavigator
    sleep: RecordingSleep
    requests_total: FakeCounter
    request_duration_ms: FakeHistogram
    retries_total: FakeCounter


def make_settings(**overrides: object) -> PortalSettings:
    values: dict[str, object] = {"http": {"base_url": BASE_URL}}
    values.update(overrides)
    return PortalSettings(**values)


def build_harness(
    handler: Handler,
    *,
    token: str | None = "token-1",
    settings: PortalSettings | None = None,
) -> Harness:
    credentials = InMemoryCredentialStore(token)
    navigator = RecordingNavigator()
    sleep = RecordingSleep()
    requests_total = FakeCounter()
    request_duration_ms = FakeHistogram()
    retries_total = FakeCounter()
    client = ApiClient(
        settings=settings or make_settings(),
        credentials=credentials,
        navigator=navigator,
        transport=httpx.MockTransport(handler),
        sleep=sleep,
        metrics=HttpMetrics(
            requests_total=requests_total,
            request_duration_ms=request_duration_ms,
            retries_total=retries_total,
        ),
    )
    return Harness(
        client=client,
        credentials=credentials,
        navigator=navigator,
        sleep=sleep,
        requests_total=requests_total,
        request_duration_ms=request_duration_ms,
        retries_total=retries_total,
    )


@pytest.fixture
def harness_factory() -> Callable[..., Harness]:
    """Return the harness builder so tests can pass their own handler."""
    return build_harness
