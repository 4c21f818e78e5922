from __future__ import annotations

import copy
import threading
from typing import Any, Iterable, Mapping


class DocumentStore:
    """
    In-memory contents of one backing file.

    Never touches disk. `replace` discards everything it held before and is
    only used when a file is loaded.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, Any] = dict(initial) if initial else {}

    def get(self, field: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(field, default)

    def set(self, field: str, value: Any) -> None:
        with self._lock:
            self._data[field] = value

    def delete(self, field: str) -> bool:
        with self._lock:
            return self._data.pop(field, _MISSING) is not _MISSING

    def delete_many(self, fields: Iterable[str]) -> int:
        with self._lock:
            removed = 0
            for field in fields:
                if self._data.pop(field, _MISSING) is not _MISSING:
                    removed += 1
            return removed

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._data)

    def replace(self, mapping: Mapping[str, Any]) -> None:
        fresh = copy.deepcopy(dict(mapping))
        with self._lock:
            self._data = fresh

    def __contains__(self, field: object) -> bool:
        with self._lock:
            return field in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


_MISSING = object()
