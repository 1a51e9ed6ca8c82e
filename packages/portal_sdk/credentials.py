"""Credential token storage capabilities injected into the SDK client."""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Protocol


class CredentialStore(Protocol):
    """Holder of the single bearer token used for outbound requests.

    Implementations must make ``set`` and ``clear`` atomically visible to
    subsequent ``get`` calls; a partially written token is never observable.
    """

    def get(self) -> str | None:
        """Return the current token, or ``None`` when signed out."""

    def set(self, token: str) -> None:
        """Replace the current token."""

    def clear(self) -> None:
        """Remove the current token."""


class InMemoryCredentialStore:
    """Process-local token slot for tests and short-lived hosts."""

    def __init__(self, token: str | None = None) -> None:
        self._lock = threading.Lock()
        self._token = token

    def get(self) -> str | None:
        with self._lock:
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._token = token

    def clear(self) -> None:
        with self._lock:
            self._token = None


class CredentialStoreError(RuntimeError):
    """Raised when a persisted credential document cannot be read."""


class FileCredentialStore:
    """Durable token slot persisted as a small JSON document.

    Writes go to a sibling temp file followed by ``os.replace`` so readers in
    other processes only ever see the old or the new document. The token is
    read from disk once and then served from memory; ``set`` and ``clear``
    write through to both.
    """

    _KEY = "auth_token"

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._loaded = False
        self._token: str | None = None

    @property
    def path(self) -> Path:
        """Return the backing file path."""
        return self._path

    def get(self) -> str | None:
        with self._lock:
            if not self._loaded:
                self._token = self._read()
                self._loaded = True
            return self._token

    def set(self, token: str) -> None:
        with self._lock:
            self._write({self._KEY: token})
            self._token = token
            self._loaded = True

    def clear(self) -> None:
        with self._lock:
            self._path.unlink(missing_ok=True)
            self._token = None
            self._loaded = True

    def _read(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except json.JSONDecodeError as exc:
            raise CredentialStoreError(
                f"Credential file is not valid JSON: {self._path}"
            ) from exc
        if not isinstance(document, dict):
            raise CredentialStoreError(
                f"Credential file must contain an object: {self._path}"
            )
        token = document.get(self._KEY)
        return token if isinstance(token, str) and token != "" else None

    def _write(self, document: dict[str, str]) -> None:
        """Atomically replace the credential file contents."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        staging = self._path.with_suffix(self._path.suffix + ".tmp")
        with staging.open("w", encoding="utf-8") as handle:
            json.dump(document, handle)
        os.replace(staging, self._path)
