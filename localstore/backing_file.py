from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping

from .errors import LoadCorruptError
from .interfaces import FileBackend
from .json_store import decode_document, encode_document
from .notifiers import ChangeStream, ChangeSubscription

logger = logging.getLogger(__name__)


class BackingFile:
    """
    Binds one storage key to the file that persists it.

    All backend calls run in a worker thread via `asyncio.to_thread` so the
    event loop never blocks on file I/O. Every document loaded or successfully
    written is published on the change stream.
    """

    def __init__(
        self,
        key: str,
        directory: Path | str | None = None,
        *,
        backend: FileBackend,
        json_indent: int | None = 2,
    ) -> None:
        self._key = key
        self._backend = backend
        self._json_indent = json_indent
        self._location = self.resolve_path(key, directory)
        self._changes = ChangeStream()

    @property
    def key(self) -> str:
        return self._key

    @property
    def location(self) -> Path:
        return self._location

    @property
    def closed(self) -> bool:
        return self._changes.closed

    def resolve_path(self, key: str, directory: Path | str | None = None) -> Path:
        return self._backend.resolve(key, directory)

    async def load_or_create(self, seed: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """
        Load the document, creating the file from `seed` when it is missing.

        Empty files count as missing. Raises LoadCorruptError when the file holds
        anything but UTF-8 encoded JSON object text; the file itself is left as it is.
        """
        try:
            text = await asyncio.to_thread(self._backend.read_all, self._location)
        except UnicodeDecodeError as e:
            raise LoadCorruptError(self._location, f"not valid UTF-8: {e}") from e
        if text is None or not text.strip():
            doc = dict(seed or {})
            await asyncio.to_thread(
                self._backend.write_all_atomic,
                self._location,
                encode_document(doc, indent=self._json_indent),
            )
            logger.debug("LOAD %s: created %s", self._key, self._location)
        else:
            try:
                doc = decode_document(text)
            except ValueError as e:
                raise LoadCorruptError(self._location, str(e)) from e
            if not isinstance(doc, dict):
                raise LoadCorruptError(
                    self._location, f"top-level value is {type(doc).__name__}, expected an object"
                )
            logger.debug("LOAD %s: read %d fields from %s", self._key, len(doc), self._location)

        self._changes.publish(doc)
        return doc

    async def write_all(self, doc: dict[str, Any]) -> None:
        text = encode_document(doc, indent=self._json_indent)
        await asyncio.to_thread(self._backend.write_all_atomic, self._location, text)
        self._changes.publish(doc)

    async def size_of(self) -> int:
        return await asyncio.to_thread(self._backend.size_of, self._location)

    def changes(self) -> ChangeSubscription:
        return self._changes.subscribe()

    def close(self) -> None:
        self._changes.close()
