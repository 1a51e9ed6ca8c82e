"""Transport interceptor chain shared by every verb of the request facade.

The chain owns the two halves of an attempt that do not depend on the verb:

- outgoing: bearer token injection and per-attempt timestamping;
- incoming: latency measurement and conversion of whatever the transport
  produced into an ``Envelope``.

Transport results are first classified into a ``TransportOutcome`` tagged
variant (``Responded`` / ``NoResponse`` / ``NotSent``) and only then mapped to
envelopes, so no raw ``httpx`` exception reaches callers except the
``NotSent`` case, which signals a caller bug and is re-raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, TypeAlias, Union

import httpx

from packages.portal_shared.envelope import Envelope, Failure, failure, success
from packages.portal_shared.errors import server_error, timeout_error
from packages.portal_shared.logging import HttpMetrics, default_http_metrics, log_context
from packages.portal_shared.logging import fields
from packages.portal_sdk.context import RequestContext
from packages.portal_sdk.credentials import CredentialStore

logger = logging.getLogger(__name__)

_NOT_SENT_ERRORS: tuple[type[Exception], ...] = (
    httpx.UnsupportedProtocol,
    httpx.LocalProtocolError,
    httpx.InvalidURL,
)


class Navigator(Protocol):
    """Host hook for the passive navigation side effect on 401 responses."""

    def navigate(self, path: str) -> None:
        """Ask the host application to move to ``path``."""


@dataclass(frozen=True)
class Responded:
    """The remote answered, with any status."""

    response: httpx.Response


@dataclass(frozen=True)
class NoResponse:
    """The request was sent but nothing came back."""

    error: Exception


@dataclass(frozen=True)
class NotSent:
    """The request could not be constructed or sent at all."""

    error: Exception


TransportOutcome: TypeAlias = Union[Responded, NoResponse, NotSent]


def classify_transport_error(exc: Exception) -> NoResponse | NotSent:
    """Split transport exceptions into "no response" and "never sent"."""
    if isinstance(exc, _NOT_SENT_ERRORS):
        return NotSent(error=exc)
    return NoResponse(error=exc)


def decode_body(response: httpx.Response) -> Any:
    """Return the response body: decoded JSON, text, or ``None`` when empty."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text
    return response.text


class InterceptorChain:
    """Outgoing and incoming request transformations for one client."""

    def __init__(
        self,
        *,
        credentials: CredentialStore,
        navigator: Navigator | None = None,
        login_path: str = "/login",
        auth_path_marker: str = "/auth/",
        slow_request_threshold_ms: float = 1000.0,
        metrics: HttpMetrics | None = None,
    ) -> None:
        self._credentials = credentials
        self._navigator = navigator
        self._login_path = login_path
        self._auth_path_marker = auth_path_marker
        self._slow_request_threshold_ms = slow_request_threshold_ms
        self._metrics = metrics or default_http_metrics()

    def prepare(
        self,
        request: httpx.Request,
        context: RequestContext,
        *,
        authenticate: bool = True,
    ) -> httpx.Request:
        """Apply outgoing transformations and timestamp the attempt."""
        if authenticate:
            token = self._credentials.get()
            if token:
                request.headers["Authorization"] = f"Bearer {token}"
        context.mark_sent()
        with log_context(_request_fields(context)):
            logger.debug("HTTP %s %s", context.method, context.url)
        return request

    async def send(
        self,
        client: httpx.AsyncClient,
        request: httpx.Request,
        context: RequestContext,
        *,
        authenticate: bool = True,
    ) -> Envelope:
        """Run one attempt end to end and return its envelope."""
        prepared = self.prepare(request, context, authenticate=authenticate)
        try:
            response = await client.send(prepared)
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            return self.resolve(classify_transport_error(exc), context)
        return self.resolve(Responded(response=response), context)

    def resolve(self, outcome: TransportOutcome, context: RequestContext) -> Envelope:
        """Convert one classified transport outcome into an envelope."""
        duration_ms = context.elapsed_ms()

        if isinstance(outcome, NotSent):
            raise outcome.error

        if isinstance(outcome, NoResponse):
            self._metrics.record_response(
                method=context.method, outcome="no_response", duration_ms=duration_ms
            )
            result = failure(timeout_error())
            self._log_failure(context, result, duration_ms, cause=outcome.error)
            return result

        response = outcome.response
        if response.is_success:
            self._metrics.record_response(
                method=context.method, outcome="success", duration_ms=duration_ms
            )
            self._warn_if_slow(context, duration_ms)
            return success(
                decode_body(response),
                status=response.status_code,
                headers=dict(response.headers.items()),
            )

        self._metrics.record_response(
            method=context.method, outcome="failure", duration_ms=duration_ms
        )
        body = decode_body(response)
        result = failure(
            server_error(
                response.status_code,
                message=_remote_message(body),
                payload=body,
            )
        )
        if response.status_code == 401:
            self._handle_unauthorized(response.request, context)
        self._log_failure(context, result, duration_ms)
        return result

    def _handle_unauthorized(self, request: httpx.Request, context: RequestContext) -> None:
        """Drop the stored token and, outside auth endpoints, signal re-login."""
        self._credentials.clear()
        is_auth_request = self._auth_path_marker in request.url.path
        with log_context(
            {
                **_request_fields(context),
                fields.EVENT: fields.UNAUTHORIZED_EVENT,
            }
        ):
            logger.warning("Unauthorized response; credentials cleared")
        if is_auth_request or self._navigator is None:
            return
        self._navigator.navigate(self._login_path)

    def _warn_if_slow(self, context: RequestContext, duration_ms: float) -> None:
        if duration_ms <= self._slow_request_threshold_ms:
            return
        with log_context(
            {
                **_request_fields(context),
                fields.EVENT: fields.HTTP_SLOW_REQUEST_EVENT,
                fields.DURATION_MS: duration_ms,
            }
        ):
            logger.warning(
                "Slow request: %s %s took %.0fms",
                context.method,
                context.url,
                duration_ms,
            )

    def _log_failure(
        self,
        context: RequestContext,
        result: Failure,
        duration_ms: float,
        *,
        cause: Exception | None = None,
    ) -> None:
        error = result.error
        with log_context(
            {
                **_request_fields(context),
                fields.EVENT: fields.HTTP_FAILURE_EVENT,
                fields.STATUS: error.status,
                fields.ERROR_KIND: error.kind.value,
                fields.DURATION_MS: duration_ms,
            }
        ):
            logger.error(
                "%s %s failed: %s%s",
                context.method,
                context.url,
                error.message,
                f" ({type(cause).__name__})" if cause is not None else "",
            )


def _remote_message(body: Any) -> str | None:
    """Extract the remote's own error message from a decoded body."""
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message.strip() != "":
            return message
    return None


def _request_fields(context: RequestContext) -> dict[str, object]:
    return {
        fields.REQUEST_ID: context.request_id,
        fields.METHOD: context.method,
        fields.URL: context.url,
        fields.ATTEMPT: context.retry_count,
    }
