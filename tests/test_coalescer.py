from __future__ import annotations

import asyncio
from typing import Any

from localstore.coalescer import FlushCoalescer


class FakeFile:
    """
    Write target whose writes can be held open with an asyncio.Event.
    """

    def __init__(self) -> None:
        self.doc: dict[str, Any] = {}
        self.writes: list[dict[str, Any]] = []
        self.failures: list[Exception] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.fail_next = 0
        self.gate: asyncio.Event | None = None

    def snapshot(self) -> dict[str, Any]:
        return dict(self.doc)

    async def write(self, snap: dict[str, Any]) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(0)
            if self.fail_next:
                self.fail_next -= 1
                raise OSError("disk full")
            self.writes.append(snap)
        finally:
            self.in_flight -= 1

    def coalescer(self) -> FlushCoalescer:
        return FlushCoalescer(self.snapshot, self.write, on_failure=self.failures.append, name="fake")


def test_single_request_writes_once():
    async def _run():
        f = FakeFile()
        c = f.coalescer()
        f.doc["a"] = 1

        await c.request_flush()

        assert f.writes == [{"a": 1}]
        assert c.writing is False
        assert c.rewrite_requested is False
        assert c.physical_writes == 1

    asyncio.run(_run())


def test_requests_during_write_coalesce_into_one_follow_up():
    async def _run():
        f = FakeFile()
        f.gate = asyncio.Event()
        c = f.coalescer()

        f.doc["a"] = 1
        first = c.request_flush()
        assert c.writing is True
        assert c.rewrite_requested is False

        await asyncio.sleep(0)
        assert f.in_flight == 1

        f.doc["b"] = 2
        again = c.request_flush()
        f.doc["c"] = 3
        c.request_flush()
        assert c.rewrite_requested is True
        assert again is first

        f.gate.set()
        await first

        assert f.writes == [{"a": 1}, {"a": 1, "b": 2, "c": 3}]
        assert f.max_in_flight == 1
        assert c.physical_writes == 2
        assert c.writing is False
        assert c.rewrite_requested is False

    asyncio.run(_run())


def test_request_storm_costs_at_most_two_writes():
    async def _run():
        f = FakeFile()
        f.gate = asyncio.Event()
        c = f.coalescer()

        settled = c.request_flush()
        await asyncio.sleep(0)
        for i in range(500):
            f.doc[f"k{i}"] = i
            c.request_flush()

        f.gate.set()
        await settled

        assert c.physical_writes == 2
        assert f.writes[-1] == f.doc
        assert f.max_in_flight == 1

    asyncio.run(_run())


def test_failed_write_does_not_block_later_flushes():
    async def _run():
        f = FakeFile()
        f.fail_next = 1
        c = f.coalescer()
        f.doc["a"] = 1

        await c.request_flush()
        assert f.writes == []
        assert len(f.failures) == 1
        assert isinstance(f.failures[0], OSError)
        assert c.writing is False

        await c.request_flush()
        assert f.writes == [{"a": 1}]

    asyncio.run(_run())


def test_failure_inside_chain_still_runs_follow_up_write():
    async def _run():
        f = FakeFile()
        f.gate = asyncio.Event()
        f.fail_next = 1
        c = f.coalescer()

        f.doc["a"] = 1
        settled = c.request_flush()
        await asyncio.sleep(0)
        f.doc["b"] = 2
        c.request_flush()

        f.gate.set()
        await settled

        assert len(f.failures) == 1
        assert f.writes == [{"a": 1, "b": 2}]
        assert c.physical_writes == 2

    asyncio.run(_run())


def test_new_chain_starts_after_previous_settles():
    async def _run():
        f = FakeFile()
        c = f.coalescer()

        f.doc["a"] = 1
        first = c.request_flush()
        await first
        f.doc["a"] = 2
        second = c.request_flush()
        assert second is not first
        await second
        await c.idle()

        assert f.writes == [{"a": 1}, {"a": 2}]

    asyncio.run(_run())
