"""Tests for the GET response cache and credential stores."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from packages.portal_sdk.cache import ResponseCache, cache_key
from packages.portal_sdk.credentials import (
    CredentialStoreError,
    FileCredentialStore,
    InMemoryCredentialStore,
)
from packages.portal_shared.envelope import failure, success
from packages.portal_shared.errors import ErrorKind, exception_to_error, server_error


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_cache_key_ignores_param_order() -> None:
    assert cache_key("get", "/jobs", {"a": 1, "b": 2}) == cache_key(
        "GET", "/jobs", {"b": 2, "a": 1}
    )
    assert cache_key("GET", "/jobs", {"a": 1}) != cache_key("GET", "/jobs", {"a": 2})


def test_cache_expires_entries_after_ttl() -> None:
    clock = FakeClock()
    cache = ResponseCache(ttl_seconds=30, clock=clock)
    envelope = success({"id": 1})

    cache.put("k", envelope)
    clock.now += 29
    assert cache.get("k") == envelope

    clock.now += 1
    assert cache.get("k") is None
    assert len(cache) == 0


def test_cache_ignores_failures_and_clears() -> None:
    cache = ResponseCache(ttl_seconds=30)

    cache.put("bad", failure(server_error(500)))
    cache.put("good", success([]))

    assert cache.get("bad") is None
    assert len(cache) == 1
    cache.clear()
    assert cache.get("good") is None


def test_in_memory_store_sets_and_clears_token() -> None:
    store = InMemoryCredentialStore()

    assert store.get() is None
    store.set("abc")
    assert store.get() == "abc"
    store.clear()
    assert store.get() is None


def test_file_store_persists_token_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "portal" / "credentials.json"

    FileCredentialStore(path).set("persisted-token")

    assert json.loads(path.read_text(encoding="utf-8")) == {"auth_token": "persisted-token"}
    assert FileCredentialStore(path).get() == "persisted-token"
    assert not path.with_suffix(".json.tmp").exists()


def test_file_store_clear_removes_file(tmp_path: Path) -> None:
    store = FileCredentialStore(tmp_path / "credentials.json")
    store.set("t")

    store.clear()
    store.clear()

    assert store.get() is None
    assert not store.path.exists()


def test_file_store_serves_token_from_memory_after_first_read(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text(json.dumps({"auth_token": "on-disk"}), encoding="utf-8")
    store = FileCredentialStore(path)

    assert store.get() == "on-disk"
    path.write_text(json.dumps({"auth_token": "edited-elsewhere"}), encoding="utf-8")
    assert store.get() == "on-disk"

    store.set("rotated")
    assert store.get() == "rotated"
    assert json.loads(path.read_text(encoding="utf-8")) == {"auth_token": "rotated"}


def test_corrupt_credential_file_raises_store_error(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(CredentialStoreError):
        FileCredentialStore(path).get()


def test_corrupt_credential_file_normalizes_to_unknown_error(tmp_path: Path) -> None:
    path = tmp_path / "credentials.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(CredentialStoreError) as excinfo:
        FileCredentialStore(path).get()
    detail = exception_to_error(excinfo.value, fallback="Failed to fetch profile")

    assert detail.kind == ErrorKind.UNKNOWN
    assert detail.payload == {"exception_type": "CredentialStoreError"}
