"""Token persistence.

This module introduces a *narrow* persistence interface
(:class:`TokenStore`) and two implementations:

* :class:`DiskTokenStore` – one JSON file per credential.
  * **Atomicity** – writes go to a unique temp file that is fsynced and
    then renamed over the record.
  * **Concurrency** – writers take an advisory lock file, so two processes
    never interleave a save.  :meth:`DiskTokenStore.update_lock` is a second,
    longer-lived lock that serialises a whole load → refresh → save cycle
    across processes.  Lock files left behind by a crashed holder are broken
    once they are older than ``stale_after`` seconds.
  * **Damage** – a record that cannot be decoded raises
    :class:`TokenStoreError`; the file itself is left alone.
  * **Filename safety** – the credential id is hashed before hitting the
    filesystem.
* :class:`MemoryTokenStore` – process-local, for tests and short-lived hosts.

Both implementations hold exactly one :class:`TokenRecord` (or none) and
never merge: ``save`` replaces whatever was stored before.

Environment variables
---------------------
THREADS_AUTH_STORAGE_DIR
    Base directory for persisted tokens.
    Defaults to ``~/.threads-oauth/auth`` when unset.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager, nullcontext
from hashlib import sha256
from pathlib import Path
from typing import Any, ContextManager, Final, Iterator, Protocol, runtime_checkable

from threads_oauth.auth.errors import TokenStoreError
from threads_oauth.auth.models import TokenRecord

_LOG = logging.getLogger("threads-oauth.auth.store")

SAVE_LOCK_STALE_AFTER: Final[float] = 60.0
UPDATE_LOCK_STALE_AFTER: Final[float] = 600.0

# --------------------------------------------------------------------------- #
# helpers                                                                     #
# --------------------------------------------------------------------------- #


def _credential_filename(credential_id: str) -> str:
    return sha256(credential_id.encode("utf-8")).hexdigest()[:16] + ".json"


def _write_json_atomically(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.stem, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, separators=(",", ":"), sort_keys=True)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _lock_age(lock_path: Path) -> float | None:
    try:
        return time.time() - lock_path.stat().st_mtime
    except FileNotFoundError:
        return None


@contextmanager
def _file_lock(
    lock_path: Path,
    retries: int = 25,
    delay: float = 0.2,
    stale_after: float | None = SAVE_LOCK_STALE_AFTER,
) -> Iterator[None]:
    """Hold *lock_path* (created with ``O_EXCL``) for the duration of the block.

    A lock file older than *stale_after* seconds is removed and the attempt
    repeated; ``None`` disables that.  Raises :class:`TokenStoreError` when
    the lock is still held after *retries* waits of *delay* seconds.
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    waited = 0
    while True:
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            age = _lock_age(lock_path)
            if age is None:
                continue
            if stale_after is not None and age > stale_after:
                _LOG.warning("Removing stale lock %s (age %.0fs)", lock_path.name, age)
                lock_path.unlink(missing_ok=True)
                continue
            if waited >= retries:
                raise TokenStoreError(
                    f"Token store is locked by another process ({lock_path.name})"
                ) from None
            waited += 1
            time.sleep(delay)
            continue
        with os.fdopen(fd, "w") as fh:
            fh.write(str(os.getpid()))
        break
    try:
        yield
    finally:
        lock_path.unlink(missing_ok=True)


# --------------------------------------------------------------------------- #
# public interface                                                            #
# --------------------------------------------------------------------------- #


@runtime_checkable
class TokenStore(Protocol):
    """Durable holder of the current token record for one credential.

    Stores may additionally provide ``update_lock()``, a context manager the
    controller holds around each re-check → refresh/exchange → save cycle.
    """

    def load(self) -> TokenRecord | None: ...

    def save(self, record: TokenRecord) -> None: ...


class DiskTokenStore(TokenStore):
    """JSON-file implementation of :class:`TokenStore`."""

    def __init__(
        self,
        base_dir: str | os.PathLike | None = None,
        *,
        credential_id: str = "default",
        lock_retries: int = 25,
        lock_delay: float = 0.2,
        update_lock_timeout: float = 300.0,
    ) -> None:
        self.base_dir = Path(
            base_dir
            or os.getenv("THREADS_AUTH_STORAGE_DIR")
            or Path.home() / ".threads-oauth" / "auth"
        ).expanduser()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.credential_id = credential_id
        self._lock_retries = lock_retries
        self._lock_delay = lock_delay
        self._update_lock_timeout = update_lock_timeout

    @property
    def path(self) -> Path:
        return self.base_dir / "tokens" / _credential_filename(self.credential_id)

    @property
    def lock_path(self) -> Path:
        return self.path.with_suffix(".lock")

    @property
    def update_lock_path(self) -> Path:
        return self.path.with_suffix(".update.lock")

    def load(self) -> TokenRecord | None:
        path = self.path
        try:
            with path.open(encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            raise TokenStoreError(f"Stored token record {path.name} is unreadable") from exc

        if not isinstance(data, dict):
            raise TokenStoreError(f"Stored token record {path.name} is not a JSON object")
        try:
            return TokenRecord.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise TokenStoreError(f"Stored token record {path.name} is invalid") from exc

    def save(self, record: TokenRecord) -> None:
        with _file_lock(self.lock_path, retries=self._lock_retries, delay=self._lock_delay):
            _write_json_atomically(self.path, record.to_dict())
        _LOG.debug("Saved token record credential=%s****", self.credential_id[:6])

    def update_lock(self) -> ContextManager[None]:
        """Cross-process lock around one token-producing cycle."""
        delay = 0.1
        return _file_lock(
            self.update_lock_path,
            retries=max(int(self._update_lock_timeout / delay), 0),
            delay=delay,
            stale_after=UPDATE_LOCK_STALE_AFTER,
        )


class MemoryTokenStore(TokenStore):
    """In-process implementation; ``load`` returns exactly what ``save`` got."""

    def __init__(self, record: TokenRecord | None = None) -> None:
        self._lock = threading.Lock()
        self._record = record
        self.save_count = 0

    def load(self) -> TokenRecord | None:
        with self._lock:
            return self._record

    def save(self, record: TokenRecord) -> None:
        if not isinstance(record, TokenRecord):
            raise TypeError("MemoryTokenStore only accepts TokenRecord instances")
        with self._lock:
            self._record = record
            self.save_count += 1

    def update_lock(self) -> ContextManager[None]:
        return nullcontext()


# --------------------------------------------------------------------------- #
# Convenience – default store                                                 #
# --------------------------------------------------------------------------- #


def default_store(credential_id: str = "default") -> DiskTokenStore:
    """Return a :class:`DiskTokenStore` rooted at ``THREADS_AUTH_STORAGE_DIR``."""
    return DiskTokenStore(credential_id=credential_id)
