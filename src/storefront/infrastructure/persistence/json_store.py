"""Shared file handling for the JSON-backed repositories."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from filelock import FileLock, Timeout

from storefront.domain.exceptions import RepositoryError


class JsonFile:
    """A JSON document on disk.

    ``locked()`` serialises read-modify-write sequences across threads and
    across processes: an ``RLock`` for this instance plus a ``FileLock`` on
    ``<file>.lock``.  Writes go to a temporary file that replaces the
    document atomically, so readers never see a partial write.
    """

    def __init__(self, file_path: Path, empty: Any, lock_timeout: float = 10.0) -> None:
        self._file_path = file_path
        self._empty = empty
        self._thread_lock = threading.RLock()
        self._file_lock = FileLock(
            str(file_path.with_name(file_path.name + ".lock")), timeout=lock_timeout
        )
        self._ensure_file()

    @contextmanager
    def locked(self) -> Iterator[None]:
        with self._thread_lock:
            try:
                self._file_lock.acquire()
            except Timeout as exc:
                raise RepositoryError(f"Timed out waiting for the lock on {self._file_path}") from exc
            try:
                yield
            finally:
                self._file_lock.release()

    def load(self) -> Any:
        try:
            return json.loads(self._file_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise RepositoryError(f"Cannot read {self._file_path}: {exc}") from exc

    def persist(self, data: Any) -> None:
        self._write(json.dumps(data, indent=2) + "\n")

    def _write(self, text: str) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._file_path.parent,
                prefix=f".{self._file_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(text)
            os.replace(tmp_name, self._file_path)
        except OSError as exc:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise RepositoryError(f"Cannot write {self._file_path}: {exc}") from exc

    def _ensure_file(self) -> None:
        if self._file_path.exists():
            return
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise RepositoryError(f"Cannot create {self._file_path.parent}: {exc}") from exc
        with self.locked():
            if not self._file_path.exists():
                self._write(json.dumps(self._empty))
