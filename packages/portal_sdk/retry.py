"""Retry and exponential backoff for idempotent request attempts."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from packages.portal_shared.config import RetrySettings
from packages.portal_shared.envelope import Envelope, Failure, failure
from packages.portal_shared.errors import retry_limit_error
from packages.portal_shared.logging import HttpMetrics, log_context
from packages.portal_shared.logging import fields
from packages.portal_sdk.context import RequestContext

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Envelope]]
Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and backoff shape for one call.

    ``max_attempts`` counts retries after the first attempt, so an operation
    runs at most ``max_attempts + 1`` times.
    """

    max_attempts: int = 2
    base_delay_ms: int = 1000
    multiplier: int = 2

    def __post_init__(self) -> None:
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0.")
        if self.base_delay_ms <= 0:
            raise ValueError("base_delay_ms must be > 0.")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1.")

    @staticmethod
    def from_settings(settings: RetrySettings) -> "RetryPolicy":
        """Build a retry policy from configured defaults."""
        return RetryPolicy(
            max_attempts=int(settings.max_attempts),
            base_delay_ms=int(settings.base_delay_ms),
            multiplier=int(settings.multiplier),
        )


def compute_backoff_delay_ms(policy: RetryPolicy, attempt: int) -> int:
    """Return the delay before retry number ``attempt + 1``."""
    if attempt < 0:
        raise ValueError("attempt must be >= 0.")
    return policy.base_delay_ms * (policy.multiplier**attempt)


def is_client_error(result: Envelope) -> bool:
    """Return ``True`` for failures the remote rejected with a 4xx status."""
    return isinstance(result, Failure) and result.error.is_client_error


async def execute_with_retry(
    operation: Operation,
    *,
    policy: RetryPolicy,
    context: RequestContext | None = None,
    sleep: Sleep = asyncio.sleep,
    metrics: HttpMetrics | None = None,
) -> Envelope:
    """Invoke ``operation`` until it succeeds, fails terminally, or runs out.

    Client errors (status 400..499) are returned after one attempt. Other
    failures are retried with ``base_delay_ms * multiplier ** attempt`` delays.
    An exception raised by ``operation`` is re-raised on the final attempt and
    otherwise retried like a failure.
    """
    attempt = 0
    while attempt <= policy.max_attempts:
        if context is not None:
            context.retry_count = attempt
        try:
            result = await operation()
        except Exception as exc:
            if attempt == policy.max_attempts:
                raise
            _log_retry(context, policy, attempt, reason=type(exc).__name__)
        else:
            if result.success:
                return result
            if is_client_error(result):
                return result
            if attempt == policy.max_attempts:
                return result
            _log_retry(context, policy, attempt, reason=result.error.kind.value)

        if metrics is not None and context is not None:
            metrics.record_retry(method=context.method)
        await sleep(compute_backoff_delay_ms(policy, attempt) / 1000.0)
        attempt += 1

    return failure(retry_limit_error())


def _log_retry(
    context: RequestContext | None,
    policy: RetryPolicy,
    attempt: int,
    *,
    reason: str,
) -> None:
    delay_ms = compute_backoff_delay_ms(policy, attempt)
    values: dict[str, object] = {
        fields.EVENT: fields.HTTP_RETRY_EVENT,
        fields.ATTEMPT: attempt + 1,
        fields.MAX_ATTEMPTS: policy.max_attempts + 1,
        fields.DELAY_MS: delay_ms,
    }
    if context is not None:
        values.update(
            {
                fields.REQUEST_ID: context.request_id,
                fields.METHOD: context.method,
                fields.URL: context.url,
            }
        )
    with log_context(values):
        logger.warning(
            "Retrying request (%d/%d) after %dms: %s",
            attempt + 1,
            policy.max_attempts + 1,
            delay_ms,
            reason,
        )
