"""Request facade for the portal origin API.

``ApiClient`` is an explicit value built once from settings and passed to the
services that need it. Every operation returns an ``Envelope``:

- ``get`` / ``post`` / ``put`` / ``delete`` run through the interceptor chain
  inside the retry controller, with a fresh timeout per attempt;
- ``upload`` sends one multipart request with progress reporting and a longer
  timeout, and is never retried;
- ``transfer_to_storage`` streams a multipart body straight to a presigned
  storage URL for the direct upload flow.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Mapping

import httpx

from packages.portal_shared.config import PortalSettings
from packages.portal_shared.envelope import Envelope, failure, success
from packages.portal_shared.errors import (
    ErrorKind,
    network_error,
    upload_aborted_error,
    upload_error,
)
from packages.portal_shared.logging import HttpMetrics, default_http_metrics, log_context
from packages.portal_shared.logging import fields as log_fields
from packages.portal_sdk.cache import ResponseCache, cache_key
from packages.portal_sdk.context import RequestContext
from packages.portal_sdk.credentials import CredentialStore, FileCredentialStore
from packages.portal_sdk.files import UploadFile
from packages.portal_sdk.interceptors import (
    InterceptorChain,
    Navigator,
    NoResponse,
    NotSent,
    Responded,
    classify_transport_error,
    decode_body,
)
from packages.portal_sdk.progress import (
    AbortSignal,
    ProgressByteStream,
    ProgressCallback,
    TransferAborted,
)
from packages.portal_sdk.retry import RetryPolicy, Sleep, execute_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Aborted:
    """Streaming outcome for a transfer cancelled through its abort signal."""

    reason: str


class ApiClient:
    """Envelope-returning HTTP client with auth, retries, and uploads."""

    def __init__(
        self,
        *,
        settings: PortalSettings | None = None,
        credentials: CredentialStore | None = None,
        navigator: Navigator | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        metrics: HttpMetrics | None = None,
    ) -> None:
        """Create one client; inject ``transport`` or ``client`` in tests."""
        self._settings = PortalSettings() if settings is None else settings
        http = self._settings.http
        self._credentials = (
            FileCredentialStore(self._settings.auth.token_path)
            if credentials is None
            else credentials
        )
        self._timeout_seconds = http.timeout_seconds
        self._upload_timeout_seconds = http.timeout_seconds * http.upload_timeout_multiplier
        self._retry_policy = RetryPolicy.from_settings(self._settings.retry)
        self._sleep = sleep
        self._metrics = metrics or default_http_metrics()
        self._chain = InterceptorChain(
            credentials=self._credentials,
            navigator=navigator,
            login_path=self._settings.auth.login_path,
            auth_path_marker=self._settings.auth.auth_path_marker,
            slow_request_threshold_ms=http.slow_request_threshold_ms,
            metrics=self._metrics,
        )
        self._cache = ResponseCache(ttl_seconds=http.cache_ttl_seconds)
        self._in_flight: dict[str, set[AbortSignal]] = {}
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=http.base_url,
            timeout=self._timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @property
    def credentials(self) -> CredentialStore:
        """Return the credential store shared with the interceptor chain."""
        return self._credentials

    @property
    def settings(self) -> PortalSettings:
        return self._settings

    @property
    def retry_policy(self) -> RetryPolicy:
        """Return the default retry policy applied to idempotent verbs."""
        return self._retry_policy

    async def aclose(self) -> None:
        """Close underlying transport resources when owned."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    async def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        use_cache: bool = False,
    ) -> Envelope:
        """Read a resource."""
        key = cache_key("GET", path, params) if use_cache else None
        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        result = await self._request("GET", path, params=params, retry_policy=retry_policy)
        if key is not None:
            self._cache.put(key, result)
        return result

    async def post(
        self,
        path: str,
        payload: Mapping[str, Any] | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> Envelope:
        """Create a resource or invoke an action with a JSON body."""
        return await self._request(
            "POST", path, json=dict(payload or {}), retry_policy=retry_policy
        )

    async def put(
        self,
        path: str,
        payload: Mapping[str, Any] | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> Envelope:
        """Replace a resource with a JSON body."""
        return await self._request(
            "PUT", path, json=dict(payload or {}), retry_policy=retry_policy
        )

    async def delete(
        self,
        path: str,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> Envelope:
        """Delete a resource."""
        return await self._request("DELETE", path, retry_policy=retry_policy)

    async def upload(
        self,
        path: str,
        files: Mapping[str, UploadFile],
        *,
        data: Mapping[str, str] | None = None,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
        request_id: str | None = None,
    ) -> Envelope:
        """Send one server-mediated multipart upload; never retried.

        Resolves only once the origin answers. Aborting resolves with an
        ``UploadAbortedError`` failure.
        """
        request = self._client.build_request(
            "POST",
            path,
            data=dict(data or {}),
            files={name: item.as_multipart() for name, item in files.items()},
            timeout=self._upload_timeout_seconds,
        )
        context = self._context("POST", request, request_id)
        outcome = await self._send_streaming(
            request,
            context,
            on_progress=on_progress,
            abort=abort,
            authenticate=True,
        )
        if isinstance(outcome, _Aborted):
            return self._aborted(context, outcome)
        return self._chain.resolve(outcome, context)

    async def transfer_to_storage(
        self,
        upload_url: str,
        fields: Mapping[str, str] | None,
        file: UploadFile,
        *,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
        request_id: str | None = None,
    ) -> Envelope:
        """POST ``fields`` then ``file`` as multipart to a presigned storage URL.

        No bearer token is attached. Outcomes: 2xx is a success, any other
        status an ``UploadError``, a transport failure a ``NetworkError``, and
        an abort an ``UploadAbortedError``.
        """
        request = self._client.build_request(
            "POST",
            upload_url,
            data=dict(fields or {}),
            files={"file": file.as_multipart()},
            timeout=self._upload_timeout_seconds,
        )
        context = self._context("POST", request, request_id)
        outcome = await self._send_streaming(
            request,
            context,
            on_progress=on_progress,
            abort=abort,
            authenticate=False,
        )
        if isinstance(outcome, _Aborted):
            return self._aborted(context, outcome)
        if isinstance(outcome, NotSent):
            raise outcome.error
        if isinstance(outcome, NoResponse):
            result = failure(network_error())
        elif outcome.response.is_success:
            response = outcome.response
            return success(
                decode_body(response),
                status=response.status_code,
                headers=dict(response.headers.items()),
            )
        else:
            result = failure(upload_error(outcome.response.status_code))

        with log_context(
            {
                log_fields.REQUEST_ID: context.request_id,
                log_fields.URL: context.url,
                log_fields.ERROR_KIND: result.error.kind.value,
                log_fields.STATUS: result.error.status,
            }
        ):
            logger.error("Storage transfer failed: %s", result.error.message)
        return result

    def cancel_requests(self, request_id: str) -> int:
        """Abort every upload currently registered under ``request_id``.

        Returns the number of transfers signalled.
        """
        signals = tuple(self._in_flight.get(request_id, ()))
        for signal in signals:
            signal.abort("Request cancelled")
        return len(signals)

    @contextmanager
    def track_abort(self, request_id: str, signal: AbortSignal) -> Iterator[AbortSignal]:
        """Register ``signal`` so ``cancel_requests(request_id)`` can trip it.

        Nested registrations of the same signal are released by the outermost
        block only.
        """
        signals = self._in_flight.setdefault(request_id, set())
        if signal in signals:
            yield signal
            return
        signals.add(signal)
        try:
            yield signal
        finally:
            signals.discard(signal)
            if not signals and self._in_flight.get(request_id) is signals:
                del self._in_flight[request_id]

    def clear_cache(self) -> None:
        """Drop every cached response."""
        self._cache.clear()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any | None = None,
        retry_policy: RetryPolicy | None = None,
    ) -> Envelope:
        context = RequestContext(method=method, url=path)

        async def attempt() -> Envelope:
            request = self._client.build_request(
                method,
                path,
                params=dict(params) if params else None,
                json=json,
                timeout=self._timeout_seconds,
            )
            context.url = str(request.url)
            return await self._chain.send(self._client, request, context)

        return await execute_with_retry(
            attempt,
            policy=retry_policy or self._retry_policy,
            context=context,
            sleep=self._sleep,
            metrics=self._metrics,
        )

    async def _send_streaming(
        self,
        request: httpx.Request,
        context: RequestContext,
        *,
        on_progress: ProgressCallback | None,
        abort: AbortSignal | None,
        authenticate: bool,
    ) -> Responded | NoResponse | NotSent | _Aborted:
        """Send a multipart request, racing it against its abort signal."""
        signal = abort or AbortSignal()
        total = int(request.headers.get("Content-Length", "0") or 0)
        request.stream = ProgressByteStream(
            request.stream,
            total=total,
            on_progress=on_progress,
            abort=signal,
        )
        prepared = self._chain.prepare(request, context, authenticate=authenticate)

        with self.track_abort(context.request_id, signal):
            send_task = asyncio.ensure_future(self._client.send(prepared))
            abort_task = asyncio.ensure_future(signal.wait())
            try:
                await asyncio.wait(
                    {send_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
                )
            finally:
                abort_task.cancel()
                if not send_task.done():
                    send_task.cancel()
                # Settle both tasks; the transfer outcome is inspected below.
                await asyncio.gather(send_task, abort_task, return_exceptions=True)

        if signal.aborted:
            return _Aborted(reason=signal.reason)
        exc = send_task.exception()
        if exc is None:
            return Responded(response=send_task.result())
        if isinstance(exc, TransferAborted):
            return _Aborted(reason=str(exc) or signal.reason)
        if isinstance(exc, (httpx.RequestError, httpx.InvalidURL)):
            return classify_transport_error(exc)
        raise exc

    def _context(
        self, method: str, request: httpx.Request, request_id: str | None
    ) -> RequestContext:
        context = RequestContext(method=method, url=str(request.url))
        if request_id is not None:
            context.request_id = request_id
        return context

    def _aborted(self, context: RequestContext, outcome: _Aborted) -> Envelope:
        with log_context(
            {
                log_fields.REQUEST_ID: context.request_id,
                log_fields.URL: context.url,
                log_fields.ERROR_KIND: ErrorKind.UPLOAD_ABORTED.value,
            }
        ):
            logger.info("Upload aborted: %s", outcome.reason)
        return failure(upload_aborted_error(outcome.reason))
