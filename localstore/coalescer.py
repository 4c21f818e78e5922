from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

Snapshot = dict[str, Any]


class FlushCoalescer:
    """
    Serializes and merges persistence requests for one backing file.

    At most one physical write is in flight. A request that arrives while a
    write is running only marks `rewrite_requested`; when the running write
    finishes, one more write of the then-current snapshot follows. The chain is
    a loop inside a single task, so a storm of requests costs at most one extra
    write and no extra stack depth.

    Write failures are logged and handed to `on_failure`; they never leave
    `writing` stuck and never break the chain.
    """

    def __init__(
        self,
        snapshot: Callable[[], Snapshot],
        write: Callable[[Snapshot], Awaitable[None]],
        *,
        on_failure: Callable[[Exception], None] | None = None,
        name: str = "",
    ) -> None:
        self._snapshot = snapshot
        self._write = write
        self._on_failure = on_failure
        self._name = name

        self._writing = False
        self._rewrite_requested = False
        self._settled: asyncio.Future[None] | None = None
        self._task: asyncio.Task[None] | None = None
        self._physical_writes = 0

    @property
    def writing(self) -> bool:
        return self._writing

    @property
    def rewrite_requested(self) -> bool:
        return self._rewrite_requested

    @property
    def physical_writes(self) -> int:
        return self._physical_writes

    def request_flush(self) -> asyncio.Future[None]:
        """
        Ask for the current document to reach the backing file.

        Returns a future that resolves once the write chain covering this
        request has settled, successfully or not. Must be called from the
        event loop thread.
        """
        if self._writing:
            self._rewrite_requested = True
            logger.debug("FLUSH %s: write in flight, coalescing request", self._name)
            if self._settled is None:
                raise RuntimeError(f"flush of {self._name!r} marked writing without a pending chain")
            return self._settled

        loop = asyncio.get_running_loop()
        first = self._snapshot()
        self._writing = True
        self._rewrite_requested = False
        settled: asyncio.Future[None] = loop.create_future()
        self._settled = settled
        self._task = loop.create_task(self._run(first, settled))
        return settled

    async def idle(self) -> None:
        """Wait until no write chain is running."""
        while self._writing and self._settled is not None:
            await asyncio.shield(self._settled)

    async def _run(self, snapshot: Snapshot, settled: asyncio.Future[None]) -> None:
        try:
            while True:
                await self._write_once(snapshot)
                if not self._rewrite_requested:
                    break
                self._rewrite_requested = False
                snapshot = self._snapshot()
        finally:
            self._writing = False
            if not settled.done():
                settled.set_result(None)

    async def _write_once(self, snapshot: Snapshot) -> None:
        self._physical_writes += 1
        try:
            await self._write(snapshot)
        except Exception as e:
            logger.warning("FLUSH %s: write failed: %r", self._name, e)
            if self._on_failure is not None:
                self._on_failure(e)
