from __future__ import annotations

import asyncio
import copy
import logging
import threading
from typing import Any, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ValueNotifier(Generic[T]):
    """
    Single-slot observable: holds the latest value and calls listeners
    whenever a new one is set.

    Listener exceptions are logged and never reach the code that set the value.
    """

    def __init__(self, value: T) -> None:
        self._value = value
        self._guard = threading.Lock()
        self._listeners: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, value: T) -> None:
        with self._guard:
            self._value = value
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("NOTIFY: listener %r failed", listener)

    def subscribe(self, listener: Callable[[T], None]) -> Callable[[], None]:
        """Register `listener`; returns a callable that unregisters it."""
        with self._guard:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._guard:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe


_CLOSED = object()


class ChangeSubscription:
    """Async iterator over document snapshots published after it was created."""

    def __init__(self, stream: "ChangeStream") -> None:
        self._stream = stream
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._done = False

    def _push(self, item: Any) -> None:
        self._queue.put_nowait(item)

    def __aiter__(self) -> "ChangeSubscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self._done:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._done = True
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        self._stream._remove(self)
        self._push(_CLOSED)


class ChangeStream:
    """
    Broadcasts full document snapshots to every live subscription.

    Delivery never blocks the publisher: each subscription buffers in its own
    unbounded queue. Once closed, the stream cannot be reopened.
    """

    def __init__(self) -> None:
        self._subscriptions: list[ChangeSubscription] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> ChangeSubscription:
        sub = ChangeSubscription(self)
        if self._closed:
            sub._push(_CLOSED)
        else:
            self._subscriptions.append(sub)
        return sub

    def publish(self, snapshot: dict[str, Any]) -> None:
        if self._closed:
            return
        for sub in list(self._subscriptions):
            sub._push(copy.deepcopy(snapshot))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subs, self._subscriptions = self._subscriptions, []
        for sub in subs:
            sub._push(_CLOSED)

    def _remove(self, sub: ChangeSubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)
