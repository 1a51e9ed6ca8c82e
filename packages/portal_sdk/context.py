"""Per-call request metadata for timing and retry bookkeeping."""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from uuid import uuid4


@dataclass
class RequestContext:
    """Ephemeral metadata for one logical call through the pipeline.

    Created at call entry and discarded when the call resolves. Only the
    interceptor chain (``started_at``) and the retry controller
    (``retry_count``) mutate it.
    """

    method: str
    url: str
    request_id: str = field(default_factory=lambda: uuid4().hex)
    started_at: float | None = None
    retry_count: int = 0

    def mark_sent(self) -> None:
        """Record a fresh monotonic submission timestamp for this attempt."""
        self.started_at = perf_counter()

    def elapsed_ms(self) -> float:
        """Return milliseconds since the current attempt was sent."""
        if self.started_at is None:
            return 0.0
        return round((perf_counter() - self.started_at) * 1000.0, 3)
