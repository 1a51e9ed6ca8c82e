"""Shared plumbing for domain services built on ``ApiClient``."""

from __future__ import annotations

import logging
import re
from typing import Awaitable

from packages.portal_shared.envelope import Envelope, failure_from_exception

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_valid_email(email: str) -> bool:
    """Return ``True`` for a plausible ``local@domain.tld`` address."""
    return _EMAIL_PATTERN.match(email) is not None


async def guarded(
    operation: Awaitable[Envelope],
    *,
    logger: logging.Logger,
    fallback: str,
) -> Envelope:
    """Await ``operation`` and normalize any unexpected exception to a failure."""
    try:
        return await operation
    except Exception as exc:
        logger.exception("%s: %s", fallback, type(exc).__name__)
        return failure_from_exception(exc, fallback=fallback)
