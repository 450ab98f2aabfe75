"""Bounded single-consumer channel for streamed crawl results."""

import asyncio
import logging
from collections import deque
from typing import Any, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChannelClosed(Exception):
    """The receiving side of the channel has been closed."""


class Notify:
    """Wake-all signal: every waiter grabbed before a notification is released by it."""

    def __init__(self):
        self._event = asyncio.Event()

    def notified(self) -> asyncio.Event:
        """Return the event the next `notify_waiters()` will set.

        Grab it while the guarded state is known to be unchanged, then await
        `.wait()` on it; a notification in between is not lost.
        """
        return self._event

    def notify_waiters(self):
        self._event.set()
        self._event = asyncio.Event()


class Channel(Generic[T]):
    """Ordered stream from many producers to one consumer.

    Capacity is counted in slots: producers `reserve()` a slot before doing
    their work, then deliver one item or a batch of items into it. The
    consumer drains with `recv()` or `async for`.

    Closing from the consumer side (`close()`) is the only cancellation
    signal: reservations start failing with `ChannelClosed`, deliveries are
    dropped and anything buffered is discarded.
    """

    def __init__(self, capacity: int = 64):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self._slots: deque[deque] = deque()
        self._reserved = 0
        self._finished = False
        self._closed = False
        self._space = Notify()
        self._items = Notify()
        self._close_listeners: list[Callable[[], None]] = []

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_finished(self) -> bool:
        return self._finished

    def add_close_listener(self, callback: Callable[[], None]):
        self._close_listeners.append(callback)

    # ---- Producer side ----

    async def reserve(self):
        """Wait for a free slot and claim it.

        Raises:
            ChannelClosed: If the consumer has closed the channel.
        """
        while True:
            if self._closed:
                raise ChannelClosed()
            if len(self._slots) + self._reserved < self.capacity:
                self._reserved += 1
                return
            await self._space.notified().wait()

    def deliver(self, items: list) -> bool:
        """Fill a previously reserved slot. Returns False if the consumer is gone."""
        self._reserved -= 1
        if self._closed:
            self._space.notify_waiters()
            return False
        if items:
            self._slots.append(deque(items))
            self._items.notify_waiters()
        else:
            self._space.notify_waiters()
        return True

    def release(self):
        """Give back a reserved slot without delivering anything."""
        self._reserved -= 1
        self._space.notify_waiters()

    def finish(self):
        """Mark end of stream; the consumer drains what is buffered, then stops."""
        self._finished = True
        self._items.notify_waiters()

    # ---- Consumer side ----

    async def recv(self) -> Optional[T]:
        """Next item, or None once the stream is finished and drained (or closed)."""
        while True:
            if self._slots:
                slot = self._slots[0]
                item = slot.popleft()
                if not slot:
                    self._slots.popleft()
                    self._space.notify_waiters()
                return item
            if self._finished or self._closed:
                return None
            await self._items.notified().wait()

    def close(self):
        """Stop receiving. Producers stop sending at their next check."""
        if self._closed:
            return
        self._closed = True
        dropped = sum(len(s) for s in self._slots)
        self._slots.clear()
        if dropped:
            logger.debug("Channel closed with %d undelivered item(s)", dropped)
        self._space.notify_waiters()
        self._items.notify_waiters()
        for callback in self._close_listeners:
            callback()

    async def collect(self) -> list[T]:
        """Drain the whole stream into a list."""
        return [item async for item in self]

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self.recv()
        if item is None:
            raise StopAsyncIteration
        return item
