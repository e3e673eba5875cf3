"""JSON document storage with atomic, locked read-modify-write.

Every persisted object in shift-core (shift documents, reconciliation months,
bucket-factor site documents) is a JSON file. Writes go through
JsonDocumentStore.transaction(), which:

1. takes a per-document lock shared by every store in the process, plus an
   fcntl.flock on a sidecar ".lock" file so other processes wait too,
2. re-reads the current document under that lock,
3. yields a mutable copy to the caller,
4. writes the copy to a temp file and os.replace()s it into place.

If the caller raises inside the block, nothing is written.
"""

from __future__ import annotations

import copy
import fcntl
import json
import logging
import os
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from shift_core.exceptions import StorageError

logger = logging.getLogger(__name__)


class _DocumentLock:
    """Re-entrant lock on one document for threads and processes.

    The thread lock is taken on every acquire; the file lock only by the
    outermost one, since flock on a second descriptor would block the owner.
    """

    def __init__(self, path: Path) -> None:
        self.lock_path = path.with_name(f".{path.name}.lock")
        self._rlock = threading.RLock()
        self._depth = 0
        self._fd: int | None = None

    def __enter__(self) -> _DocumentLock:
        self._rlock.acquire()
        if self._depth == 0:
            fd = None
            try:
                self.lock_path.parent.mkdir(parents=True, exist_ok=True)
                fd = os.open(self.lock_path, os.O_RDWR | os.O_CREAT, 0o644)
                fcntl.flock(fd, fcntl.LOCK_EX)
            except OSError as e:
                if fd is not None:
                    os.close(fd)
                self._rlock.release()
                raise StorageError(f"Could not lock document {self.lock_path}: {e}") from e
            self._fd = fd
        self._depth += 1
        return self

    def __exit__(self, *exc: object) -> None:
        self._depth -= 1
        try:
            if self._depth == 0 and self._fd is not None:
                fcntl.flock(self._fd, fcntl.LOCK_UN)
                os.close(self._fd)
                self._fd = None
        finally:
            self._rlock.release()


# Keyed by resolved path so every store instance on a data root shares them.
_DOCUMENT_LOCKS: dict[Path, _DocumentLock] = {}
_DOCUMENT_LOCKS_GUARD = threading.Lock()


def document_lock(path: Path) -> _DocumentLock:
    """The process-wide lock for the document at path."""
    key = Path(os.path.abspath(path))
    with _DOCUMENT_LOCKS_GUARD:
        lock = _DOCUMENT_LOCKS.get(key)
        if lock is None:
            lock = _DocumentLock(key)
            _DOCUMENT_LOCKS[key] = lock
        return lock


class JsonDocumentStore:
    """File-backed store of JSON documents addressed by relative path.

    Example:
        >>> store = JsonDocumentStore(Path("data/reconciliations"))
        >>> with store.transaction("north/2025-01.json") as doc:
        ...     doc.setdefault("records", [])
        >>> store.read("north/2025-01.json")
        {'records': []}
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, relpath: str) -> Path:
        return self.root / relpath

    def _lock_for(self, relpath: str) -> _DocumentLock:
        return document_lock(self.path_for(relpath))

    def exists(self, relpath: str) -> bool:
        return self.path_for(relpath).exists()

    def read(self, relpath: str) -> dict[str, Any]:
        """Read a document, returning an empty dict if it does not exist.

        Raises:
            StorageError: If the file exists but is not a JSON object.
        """
        path = self.path_for(relpath)
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Could not read document {path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Document {path} is not a JSON object")
        return data

    def write(self, relpath: str, data: dict[str, Any]) -> None:
        """Atomically replace a document."""
        with self._lock_for(relpath):
            self._write_atomic(self.path_for(relpath), data)

    @contextmanager
    def transaction(self, relpath: str) -> Iterator[dict[str, Any]]:
        """Locked read-modify-write of a single document.

        The yielded dict is a deep copy of the stored document; it is written
        back only if the block exits without an exception.
        """
        with self._lock_for(relpath):
            current = self.read(relpath)
            working = copy.deepcopy(current)
            yield working
            self._write_atomic(self.path_for(relpath), working)
            logger.debug("Committed document %s", relpath)

    def list_documents(self, subdir: str = "", pattern: str = "*.json") -> list[str]:
        """List document paths (relative to root) under a subdirectory."""
        base = self.root / subdir if subdir else self.root
        if not base.exists():
            return []
        return sorted(str(p.relative_to(self.root)) for p in base.glob(pattern) if p.is_file())

    @staticmethod
    def _write_atomic(path: Path, data: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
