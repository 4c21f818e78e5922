from __future__ import annotations

from pathlib import Path


class LocalStorageError(Exception):
    """Base class for every error raised or reported by localstore."""


class LoadCorruptError(LocalStorageError):
    """
    The backing file exists but does not hold a JSON object.

    Never raised through `LocalStorage.ready`; it is published on the
    storage's `on_error` notifier instead.
    """

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(f"corrupt storage file {path}: {reason}")
        self.path = path
        self.reason = reason


class WriteFailure(LocalStorageError):
    def __init__(self, key: str, path: Path | str, cause: BaseException) -> None:
        super().__init__(f"failed to write {key!r} to {path}: {cause!r}")
        self.key = key
        self.path = path
        self.cause = cause


class NotSupportedError(LocalStorageError):
    """The current backend cannot answer this query (e.g. no real filesystem)."""


class DocumentEncodingError(LocalStorageError, TypeError):
    """A value cannot be turned into a JSON document form."""
