"""
Unit tests for DiskTokenStore / MemoryTokenStore.

Coverage:
* save → load round trip is lossless
* atomic write leaves no temp files, overwrite never merges
* lock exclusivity (single writer), typed timeout, stale lock removal
* damaged records raise TokenStoreError and stay on disk
* update lock and default_store
"""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path

import pytest

from threads_oauth.auth.errors import AuthorizationError, TokenStoreError
from threads_oauth.auth.models import TokenRecord
from threads_oauth.auth.store import DiskTokenStore, MemoryTokenStore, _file_lock, default_store


def _build_store(tmp_path: Path, **kwargs) -> DiskTokenStore:
    return DiskTokenStore(base_dir=tmp_path, **kwargs)


def test_empty_store_loads_none(tmp_path: Path) -> None:
    assert _build_store(tmp_path).load() is None
    assert MemoryTokenStore().load() is None


@pytest.mark.parametrize(
    "record",
    [
        TokenRecord(access_token="tok1", refresh_token="ref1", expires_at=4_600, token_type="bearer", obtained_at=1_000),
        TokenRecord(access_token="tok2"),
        TokenRecord(access_token="tök-☃", refresh_token=None, expires_at=None),
    ],
)
def test_disk_round_trip(tmp_path: Path, record: TokenRecord) -> None:
    store = _build_store(tmp_path)
    store.save(record)
    assert store.load() == record
    # a fresh instance over the same directory sees the same record
    assert _build_store(tmp_path).load() == record


def test_save_overwrites_without_merging(tmp_path: Path) -> None:
    store = _build_store(tmp_path)
    store.save(TokenRecord(access_token="old", refresh_token="old-rt", expires_at=10))
    store.save(TokenRecord(access_token="new", expires_at=20))

    loaded = store.load()
    assert loaded == TokenRecord(access_token="new", expires_at=20)
    assert loaded.refresh_token is None


def test_atomic_write_leaves_no_temp_or_lock(tmp_path: Path) -> None:
    store = _build_store(tmp_path)
    store.save(TokenRecord(access_token="at"))

    assert store.path.exists()
    assert not list(store.path.parent.glob("*.tmp"))
    assert not store.lock_path.exists()
    with store.path.open() as fh:
        assert json.load(fh)["access_token"] == "at"


def test_credentials_are_isolated_and_hashed(tmp_path: Path) -> None:
    a = _build_store(tmp_path, credential_id="../../etc/passwd")
    b = _build_store(tmp_path, credential_id="other")
    a.save(TokenRecord(access_token="a"))

    assert b.load() is None
    assert a.path.parent == tmp_path / "tokens"
    assert "passwd" not in a.path.name


def test_save_fails_when_lock_held(tmp_path: Path) -> None:
    store = _build_store(tmp_path, lock_retries=0, lock_delay=0)
    tok = TokenRecord(access_token="at")

    def holder() -> None:
        with _file_lock(store.lock_path, retries=0, delay=0):
            time.sleep(0.3)

    t = threading.Thread(target=holder)
    t.start()
    time.sleep(0.05)  # ensure thread grabbed lock

    with pytest.raises(TokenStoreError):
        store.save(tok)
    t.join()

    store.save(tok)
    assert store.load() == tok


def test_storage_dir_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("THREADS_AUTH_STORAGE_DIR", str(tmp_path / "env-dir"))
    store = DiskTokenStore()
    assert store.base_dir == tmp_path / "env-dir"


def test_memory_store_round_trip_and_type_check() -> None:
    store = MemoryTokenStore()
    rec = TokenRecord(access_token="at", refresh_token="rt", expires_at=1)
    store.save(rec)
    assert store.load() is rec
    assert store.save_count == 1
    with pytest.raises(TypeError):
        store.save({"access_token": "at"})  # type: ignore[arg-type]


def test_stale_lock_is_removed(tmp_path: Path) -> None:
    store = _build_store(tmp_path, lock_retries=0, lock_delay=0)
    store.lock_path.parent.mkdir(parents=True, exist_ok=True)
    store.lock_path.write_text("12345")
    an_hour_ago = time.time() - 3_600
    os.utime(store.lock_path, (an_hour_ago, an_hour_ago))

    store.save(TokenRecord(access_token="at"))

    assert store.load() == TokenRecord(access_token="at")
    assert not store.lock_path.exists()


def test_fresh_foreign_lock_is_respected(tmp_path: Path) -> None:
    store = _build_store(tmp_path, lock_retries=0, lock_delay=0)
    store.lock_path.parent.mkdir(parents=True, exist_ok=True)
    store.lock_path.write_text("12345")

    with pytest.raises(TokenStoreError):
        store.save(TokenRecord(access_token="at"))
    assert store.lock_path.exists()
    assert not store.path.exists()


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        "",
        b"\xff\xfe\x00".decode("latin-1"),
        "[1, 2]",
        '"tok"',
        '{"access_token": ""}',
        '{"refresh_token": "ref1"}',
        '{"access_token": "at", "expires_at": "later"}',
    ],
)
def test_damaged_record_raises_store_error(tmp_path: Path, content: str) -> None:
    store = _build_store(tmp_path)
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text(content, encoding="latin-1")
    before = store.path.read_bytes()

    with pytest.raises(TokenStoreError) as info:
        store.load()

    assert isinstance(info.value, AuthorizationError)
    assert store.path.read_bytes() == before


def test_update_lock_is_exclusive_and_released(tmp_path: Path) -> None:
    holder = _build_store(tmp_path)
    waiter = _build_store(tmp_path, update_lock_timeout=0)

    with holder.update_lock():
        assert holder.update_lock_path.exists()
        with pytest.raises(TokenStoreError):
            with waiter.update_lock():
                pass
        # the save lock is separate, so saving inside an update cycle works
        holder.save(TokenRecord(access_token="at"))

    assert not holder.update_lock_path.exists()
    with waiter.update_lock():
        pass


def test_memory_store_update_lock_is_noop() -> None:
    with MemoryTokenStore().update_lock():
        pass


def test_default_store_uses_env_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("THREADS_AUTH_STORAGE_DIR", str(tmp_path))
    store = default_store("client-123")
    store.save(TokenRecord(access_token="at"))

    assert store.path.parent == tmp_path / "tokens"
    assert DiskTokenStore(tmp_path, credential_id="client-123").load() == TokenRecord(access_token="at")
