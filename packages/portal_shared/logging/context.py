"""Request-scoped log fields for the Portal SDK pipeline.

The interceptor chain, retry controller and upload orchestrator each open a
``log_context`` around the lines they emit for one request. Fields stack:
an inner block sees the request id bound by the outer one. The fields live in
a ``ContextVar``, so concurrent request chains on one client stay separate.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from enum import Enum
from types import MappingProxyType
from typing import Iterator, Mapping

_EMPTY: Mapping[str, str] = MappingProxyType({})
_REQUEST_FIELDS: ContextVar[Mapping[str, str]] = ContextVar(
    "portal_request_fields", default=_EMPTY
)


def render_field(value: object) -> str:
    """Render one field value the way it appears in log output."""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(value)


def current_fields() -> Mapping[str, str]:
    """Return the read-only fields bound by the enclosing ``log_context`` blocks."""
    return _REQUEST_FIELDS.get()


@contextmanager
def log_context(values: Mapping[str, object]) -> Iterator[Mapping[str, str]]:
    """Bind ``values`` on top of the current fields for the duration of a block.

    ``None`` values are skipped so optional fields such as a missing status
    never show up as the string ``"None"``.
    """
    merged = dict(_REQUEST_FIELDS.get())
    for key, value in values.items():
        if value is not None:
            merged[str(key)] = render_field(value)
    bound = MappingProxyType(merged)
    token = _REQUEST_FIELDS.set(bound)
    try:
        yield bound
    finally:
        _REQUEST_FIELDS.reset(token)
