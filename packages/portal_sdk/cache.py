"""Content-addressed response cache for idempotent reads."""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from time import monotonic
from typing import Any, Callable, Mapping

from packages.portal_shared.envelope import Envelope, Success


def cache_key(method: str, url: str, params: Mapping[str, Any] | None = None) -> str:
    """Return a stable digest for one request identity."""
    material = json.dumps(
        {
            "method": method.upper(),
            "url": url,
            "params": dict(params or {}),
        },
        sort_keys=True,
        default=str,
        separators=(",", ":"),
    )
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class _Entry:
    envelope: Success[Any]
    expires_at: float


class ResponseCache:
    """TTL cache holding only ``Success`` envelopes."""

    def __init__(
        self,
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Success[Any] | None:
        """Return a live cached envelope, evicting it when expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.envelope

    def put(self, key: str, envelope: Envelope) -> None:
        """Store ``envelope`` when it is a success; failures are ignored."""
        if not isinstance(envelope, Success) or self._ttl_seconds <= 0:
            return
        with self._lock:
            self._entries[key] = _Entry(
                envelope=envelope,
                expires_at=self._clock() + self._ttl_seconds,
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
