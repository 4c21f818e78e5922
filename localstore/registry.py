from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Mapping

from .backends import DiskFileBackend, MemoryFileBackend
from .backing_file import BackingFile
from .interfaces import FileBackend
from .paths import file_name_for
from .settings import Settings, get_settings
from .storage import LocalStorage

logger = logging.getLogger(__name__)


def backend_from_settings(settings: Settings) -> FileBackend:
    if settings.persist_to_disk:
        return DiskFileBackend(settings.data_dir)
    return MemoryFileBackend(settings.data_dir)


class StorageRegistry:
    """
    One live `LocalStorage` per backing file name.

    Keys that map to the same file (`"prefs"`, `"prefs.json"`, `"a/b"` and
    `"a_b"`) share one instance.

    Entries are only removed by `dispose`. The backend and settings are read
    lazily on first use so a registry can be created at import time and
    configured from the environment later.
    """

    def __init__(self, backend: FileBackend | None = None, *, settings: Settings | None = None) -> None:
        self._guard = threading.RLock()
        self._instances: dict[str, LocalStorage] = {}
        self._backend = backend
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def backend(self) -> FileBackend:
        with self._guard:
            if self._backend is None:
                self._backend = backend_from_settings(self.settings)
            return self._backend

    def get_or_create(
        self,
        key: str,
        directory: Path | str | None = None,
        initial_data: Mapping[str, Any] | None = None,
    ) -> LocalStorage:
        """
        Return the storage registered under `key`, creating it if needed.

        `directory` and `initial_data` only matter when a new instance is
        created. Must be called with a running event loop.
        """
        if not isinstance(key, str) or not key.strip():
            raise ValueError("storage key must be a non-empty string")

        ident = file_name_for(key)
        with self._guard:
            existing = self._instances.get(ident)
            if existing is not None:
                return existing
            backing = BackingFile(
                key,
                directory,
                backend=self.backend,
                json_indent=self.settings.json_indent,
            )
            storage = LocalStorage(key, backing, initial_data, registry=self)
            self._instances[ident] = storage

        logger.debug("REGISTRY: opened %s at %s", key, backing.location)
        return storage

    def get(self, key: str) -> LocalStorage | None:
        ident = file_name_for(key)
        with self._guard:
            return self._instances.get(ident)

    def dispose(self, storage: LocalStorage) -> None:
        ident = file_name_for(storage.key)
        with self._guard:
            if self._instances.get(ident) is storage:
                del self._instances[ident]
        storage._release()

    def dispose_all(self) -> None:
        with self._guard:
            instances = list(self._instances.values())
            self._instances.clear()
        for storage in instances:
            storage._release()

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str) or not key.strip():
            return False
        ident = file_name_for(key)
        with self._guard:
            return ident in self._instances

    def __len__(self) -> int:
        with self._guard:
            return len(self._instances)


DEFAULT_REGISTRY = StorageRegistry()


def open_storage(
    key: str,
    directory: Path | str | None = None,
    initial_data: Mapping[str, Any] | None = None,
    *,
    registry: StorageRegistry | None = None,
) -> LocalStorage:
    target = registry if registry is not None else DEFAULT_REGISTRY
    return target.get_or_create(key, directory, initial_data)
