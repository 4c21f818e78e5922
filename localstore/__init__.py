from __future__ import annotations

from .backends import DiskFileBackend, MemoryFileBackend
from .errors import (
    DocumentEncodingError,
    LoadCorruptError,
    LocalStorageError,
    NotSupportedError,
    WriteFailure,
)
from .interfaces import FileBackend, ToDocumentForm
from .registry import DEFAULT_REGISTRY, StorageRegistry, open_storage
from .storage import LocalStorage

__all__ = [
    "LocalStorage",
    "StorageRegistry",
    "DEFAULT_REGISTRY",
    "open_storage",
    "FileBackend",
    "DiskFileBackend",
    "MemoryFileBackend",
    "ToDocumentForm",
    "LocalStorageError",
    "LoadCorruptError",
    "WriteFailure",
    "NotSupportedError",
    "DocumentEncodingError",
]
