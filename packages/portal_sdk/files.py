"""File payloads handed to upload operations."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


@dataclass(frozen=True)
class UploadFile:
    """One named binary payload with its MIME type."""

    name: str
    content_type: str
    content: bytes | BinaryIO
    size: int

    @classmethod
    def from_bytes(cls, name: str, content: bytes, content_type: str) -> "UploadFile":
        return cls(name=name, content_type=content_type, content=content, size=len(content))

    @classmethod
    def from_path(cls, path: str | Path, content_type: str | None = None) -> "UploadFile":
        """Load a file from disk, guessing its MIME type from the suffix."""
        resolved = Path(path)
        guessed, _ = mimetypes.guess_type(resolved.name)
        return cls.from_bytes(
            resolved.name,
            resolved.read_bytes(),
            content_type or guessed or "application/octet-stream",
        )

    def as_multipart(self) -> tuple[str, bytes | BinaryIO, str]:
        """Return the ``(filename, content, content_type)`` tuple httpx expects."""
        return (self.name, self.content, self.content_type)
