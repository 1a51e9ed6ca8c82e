"""Stdout logging setup for hosts embedding the Portal SDK.

The SDK only creates module loggers. A host that wants the SDK's structured
output calls ``configure_logging(settings.logging)`` once at startup; that
installs one stdout handler on the root logger which stamps every record with
the host's service name and environment plus the request fields bound by the
pipeline. Credential-bearing fields are masked before they are rendered.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Mapping

from packages.portal_shared.config.models import LoggingSettings

from . import fields
from .context import current_fields

REDACTED = "[redacted]"
SENSITIVE_FIELDS = frozenset(
    {"authorization", "token", "auth_token", "password", "confirm_password"}
)


def redact(values: Mapping[str, str]) -> dict[str, str]:
    """Return ``values`` with credential-bearing fields masked."""
    return {
        key: REDACTED if key.lower() in SENSITIVE_FIELDS else value
        for key, value in values.items()
    }


class ContextFilter(logging.Filter):
    """Attach host fields and the current request fields to each record."""

    def __init__(self, host_fields: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._host_fields = dict(host_fields or {})

    def filter(self, record: logging.LogRecord) -> bool:
        record.portal_fields = redact({**self._host_fields, **current_fields()})
        return True


class PortalFormatter(logging.Formatter):
    """Render records as one JSON object or one plain line with ``key=value`` pairs."""

    def __init__(self, *, json_output: bool) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._json_output = json_output

    def format(self, record: logging.LogRecord) -> str:
        bound: Mapping[str, str] = getattr(record, "portal_fields", {})
        if self._json_output:
            return self._format_json(record, bound)
        line = (
            f"{self.formatTime(record, self.datefmt)} {record.levelname} "
            f"{record.name} {record.getMessage()}"
        )
        if bound:
            line += " " + " ".join(f"{key}={value}" for key, value in sorted(bound.items()))
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

    def _format_json(self, record: logging.LogRecord, bound: Mapping[str, str]) -> str:
        payload: dict[str, str] = {
            fields.TIMESTAMP: datetime.now(UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
        }
        payload.update(bound)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


class PortalStreamHandler(logging.StreamHandler):
    """Stdout handler owned by ``configure_logging``."""


def configure_logging(settings: LoggingSettings) -> logging.Handler:
    """Install the Portal stdout handler on the root logger and return it.

    A handler installed by an earlier call is replaced. Handlers the host
    added itself are left alone.
    """
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, PortalStreamHandler):
            root.removeHandler(existing)
    root.setLevel(settings.level)

    handler = PortalStreamHandler(stream=sys.stdout)
    handler.setLevel(settings.level)
    handler.addFilter(
        ContextFilter(
            {
                fields.SERVICE: settings.service,
                fields.ENVIRONMENT: settings.environment,
            }
        )
    )
    handler.setFormatter(PortalFormatter(json_output=settings.json_output))
    root.addHandler(handler)
    return handler
