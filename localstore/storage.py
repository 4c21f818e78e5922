from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable, Mapping

from .backing_file import BackingFile
from .coalescer import FlushCoalescer
from .document import DocumentStore
from .encoding import to_document_form
from .errors import WriteFailure
from .notifiers import ChangeSubscription, ValueNotifier

if TYPE_CHECKING:
    from .registry import StorageRegistry

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Key-value store kept in memory and persisted to one JSON file.

    Get instances through a `StorageRegistry` (or `open_storage`) so every
    caller using the same key shares one document. Construction starts the
    initial load immediately and therefore needs a running event loop.

    - `ready` resolves to True once the file was loaded or created, even when
      loading failed; failures land on `on_error`.
    - Mutations wait for readiness, apply to memory, then request a flush and
      wait until the write chain covering them settles. Write failures never
      reach the caller; they are logged and published on `on_write_error`.
    """

    def __init__(
        self,
        key: str,
        backing: BackingFile,
        initial_data: Mapping[str, Any] | None = None,
        *,
        registry: "StorageRegistry | None" = None,
    ) -> None:
        self._key = key
        self._backing = backing
        self._initial_data = dict(initial_data) if initial_data else {}
        self._registry = registry
        self._disposed = False

        self._document = DocumentStore()
        self._coalescer = FlushCoalescer(
            self._document.snapshot,
            backing.write_all,
            on_failure=self._report_write_failure,
            name=key,
        )

        # Last initialization error, None while loading went fine.
        self.on_error: ValueNotifier[BaseException | None] = ValueNotifier(None)
        self.on_write_error: ValueNotifier[WriteFailure | None] = ValueNotifier(None)

        self._ready: asyncio.Task[bool] = asyncio.get_running_loop().create_task(self._init())

    @property
    def key(self) -> str:
        return self._key

    @property
    def location(self) -> Path:
        return self._backing.location

    @property
    def ready(self) -> Awaitable[bool]:
        return asyncio.shield(self._ready)

    @property
    def is_ready(self) -> bool:
        return self._ready.done()

    @property
    def writing(self) -> bool:
        return self._coalescer.writing

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def _init(self) -> bool:
        try:
            doc = await self._backing.load_or_create(self._initial_data)
        except Exception as e:
            logger.warning("LOAD %s: failed to initialize %s: %r", self._key, self.location, e)
            self.on_error.value = e
        else:
            self._document.replace(doc)
        return True

    def _report_write_failure(self, error: Exception) -> None:
        self.on_write_error.value = WriteFailure(self._key, self.location, error)

    async def _flush(self) -> None:
        await asyncio.shield(self._coalescer.request_flush())

    def stream(self) -> ChangeSubscription:
        """Async iterator of document snapshots, one per load or successful write."""
        return self._backing.changes()

    async def get_storage_size(self) -> int:
        """
        Number of bytes in the backing file.

        Raises NotSupportedError when the backend has no real filesystem.
        """
        return await self._backing.size_of()

    def get_item(self, key: str, default: Any = None) -> Any:
        return self._document.get(key, default)

    def has_item(self, key: str) -> bool:
        return key in self._document

    def get_data(self) -> dict[str, Any]:
        return self._document.snapshot()

    async def set_item(
        self,
        key: str,
        value: Any,
        *,
        to_encodable: Callable[[Any], Any] | None = None,
        write: bool = True,
    ) -> None:
        """
        Store `value` under `key`.

        `to_encodable` is applied to the value first; otherwise objects with a
        `to_disk_doc()` method or pydantic models are converted. Values that
        end up not JSON-encodable raise DocumentEncodingError and leave the
        storage untouched. With `write=False` nothing is persisted until the
        next flush (see `write_data`).
        """
        data = to_document_form(value, to_encodable)
        await self.ready
        self._document.set(key, data)
        if write:
            await self._flush()

    async def write_data(self) -> None:
        """Persist the current document without changing it."""
        await self.ready
        await self._flush()

    async def delete_item(self, key: str, *, write: bool = True) -> None:
        await self.ready
        self._document.delete(key)
        if write:
            await self._flush()

    async def delete_items(self, keys: Iterable[str], *, write: bool = True) -> None:
        """Delete several keys, then persist once."""
        keys = list(keys)
        await self.ready
        self._document.delete_many(keys)
        if write:
            await self._flush()

    async def clear(self, *, write: bool = True) -> None:
        await self.ready
        self._document.clear()
        if write:
            await self._flush()

    def dispose(self) -> None:
        """
        Drop this instance from its registry and close its change stream.

        Pending writes are not flushed first; an in-flight write still
        completes on its own.
        """
        if self._registry is not None:
            self._registry.dispose(self)
        else:
            self._release()

    def _release(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._backing.close()
        logger.debug("DISPOSE %s: released %s", self._key, self.location)
