"""Upload progress reporting and caller-initiated transfer cancellation."""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Callable

import httpx

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ProgressEvent:
    """One progress notification for an in-flight upload."""

    loaded: int
    total: int
    percentage: int


ProgressCallback = Callable[[ProgressEvent], None]


class TransferAborted(Exception):
    """Raised inside a request body stream when its abort signal fires."""


def compute_percentage(loaded: int, total: int) -> int:
    """Return ``loaded`` as a rounded percentage of ``total``.

    An unknown (zero) total is divided as 1, then clamped to 100.
    """
    raw = (loaded * 100) / (total or 1)
    return max(0, min(100, math.floor(raw + 0.5)))


class ProgressTracker:
    """Accumulates transferred bytes and emits non-decreasing events."""

    def __init__(self, *, total: int, on_progress: ProgressCallback | None) -> None:
        self._total = max(0, int(total))
        self._on_progress = on_progress
        self._loaded = 0

    @property
    def loaded(self) -> int:
        return self._loaded

    def advance(self, size: int) -> None:
        """Record ``size`` more bytes sent and notify the callback."""
        if size <= 0:
            return
        self._loaded += size
        if self._on_progress is None:
            return
        self._on_progress(
            ProgressEvent(
                loaded=self._loaded,
                total=self._total,
                percentage=compute_percentage(self._loaded, self._total),
            )
        )


class AbortSignal:
    """Cancellation flag a caller can trip while a transfer is in flight.

    ``abort`` must be called from the event loop running the transfer.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason = "Upload aborted"

    @property
    def aborted(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def abort(self, reason: str = "Upload aborted") -> None:
        """Trip the signal; later calls keep the first reason."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()

    async def wait(self) -> None:
        """Block until the signal is tripped."""
        await self._event.wait()


class ProgressByteStream(httpx.AsyncByteStream):
    """Request body wrapper that reports progress and honors an abort signal.

    Parts from ``source`` are re-sliced into ``chunk_size`` pieces; progress is
    reported after each piece is handed to the transport.
    """

    def __init__(
        self,
        source: AsyncIterable[bytes],
        *,
        total: int,
        on_progress: ProgressCallback | None = None,
        abort: AbortSignal | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0.")
        self._source = source
        self._total = total
        self._on_progress = on_progress
        self._abort = abort
        self._chunk_size = chunk_size

    async def __aiter__(self) -> AsyncIterator[bytes]:
        tracker = ProgressTracker(total=self._total, on_progress=self._on_progress)
        async for part in self._source:
            for offset in range(0, len(part), self._chunk_size):
                if self._abort is not None and self._abort.aborted:
                    raise TransferAborted(self._abort.reason)
                chunk = part[offset : offset + self._chunk_size]
                yield chunk
                tracker.advance(len(chunk))
                # Let a concurrent abort() run between chunks.
                await asyncio.sleep(0)
        if self._abort is not None and self._abort.aborted:
            raise TransferAborted(self._abort.reason)
