from __future__ import annotations

import threading
from pathlib import Path

from .errors import NotSupportedError
from .json_store import atomic_write_text, read_text
from .paths import ensure_dir, storage_path


class PathLockRegistry:
    """
    Provides a stable lock per normalized file path so writes to one file are
    serialized without contending on unrelated files.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        key = str(path.resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


GLOBAL_PATH_LOCKS = PathLockRegistry()


class DiskFileBackend:
    """
    Stores each document as a file under a directory on the local filesystem.

    - Missing files read as None.
    - Writes go through a temp file and a rename.
    """

    def __init__(self, default_dir: Path | str, *, locks: PathLockRegistry | None = None) -> None:
        self._default_dir = Path(default_dir)
        self._locks = locks or GLOBAL_PATH_LOCKS

    @property
    def default_dir(self) -> Path:
        return self._default_dir

    def resolve(self, key: str, directory: Path | str | None = None) -> Path:
        return storage_path(key, directory if directory is not None else self._default_dir)

    def read_all(self, location: Path) -> str | None:
        with self._locks.lock_for(location):
            return read_text(location)

    def write_all_atomic(self, location: Path, text: str) -> None:
        ensure_dir(location.parent)
        with self._locks.lock_for(location):
            atomic_write_text(location, text)

    def size_of(self, location: Path) -> int:
        return location.stat().st_size

    def delete(self, location: Path) -> None:
        with self._locks.lock_for(location):
            location.unlink(missing_ok=True)


class MemoryFileBackend:
    """
    Backend for environments without a usable filesystem.

    File text lives in a process-local dictionary. Size introspection is not
    available here.
    """

    def __init__(self, default_dir: Path | str = "memory") -> None:
        self._default_dir = Path(default_dir)
        self._guard = threading.Lock()
        self._files: dict[Path, str] = {}

    def resolve(self, key: str, directory: Path | str | None = None) -> Path:
        return storage_path(key, directory if directory is not None else self._default_dir)

    def read_all(self, location: Path) -> str | None:
        with self._guard:
            return self._files.get(location)

    def write_all_atomic(self, location: Path, text: str) -> None:
        with self._guard:
            self._files[location] = text

    def size_of(self, location: Path) -> int:
        raise NotSupportedError("storage size is not available without a filesystem")

    def delete(self, location: Path) -> None:
        with self._guard:
            self._files.pop(location, None)
