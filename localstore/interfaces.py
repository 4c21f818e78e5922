from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol, runtime_checkable


class FileBackend(Protocol):
    """
    Whole-file text storage addressed by location.

    Implementations must be safe to call from worker threads; the backing-file
    adapter runs every call through `asyncio.to_thread`.
    """

    def resolve(self, key: str, directory: Path | str | None = None) -> Path:
        """Deterministically map a key (and optional directory) to a location."""
        ...

    def read_all(self, location: Path) -> str | None:
        """Return the file's text, or None when it does not exist."""
        ...

    def write_all_atomic(self, location: Path, text: str) -> None:
        ...

    def size_of(self, location: Path) -> int:
        """Byte size of the file. Raises NotSupportedError when unavailable."""
        ...

    def delete(self, location: Path) -> None:
        ...


@runtime_checkable
class ToDocumentForm(Protocol):
    """Values that know how to turn themselves into a JSON document form."""

    def to_disk_doc(self) -> Any:
        ...
