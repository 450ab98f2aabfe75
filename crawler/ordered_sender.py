"""Deliver concurrently produced results in admission order.

Producers call `admit()` in the order their results must appear, go off and
do their work concurrently, then `send()`. A send blocks until every permit
admitted before it has sent.

Every admitted permit must eventually send (an error value on failure paths
is fine). A permit that is dropped without sending stalls every later permit
of the same sender for as long as the consumer keeps the channel open.
"""

import asyncio
from typing import Generic, Iterable, TypeVar

from crawler.channel import Channel, Notify

T = TypeVar("T")


class OrderedSender(Generic[T]):
    """Wraps a Channel so that sends land in the order permits were admitted."""

    def __init__(self, channel: Channel[T]):
        self.channel = channel
        self._next_seq = 0
        self._cursor = 0
        self._lock = asyncio.Lock()
        self._turn = Notify()
        channel.add_close_listener(self._turn.notify_waiters)

    @property
    def admitted(self) -> int:
        return self._next_seq

    @property
    def sent(self) -> int:
        return self._cursor

    async def admit(self) -> "SequencedPermit[T]":
        """Reserve a channel slot and take the next sequence number.

        Raises:
            ChannelClosed: If the consumer has closed the channel.
        """
        await self.channel.reserve()
        seq = self._next_seq
        self._next_seq += 1
        return SequencedPermit(self, seq)

    async def _send(self, seq: int, items: list) -> bool:
        while True:
            async with self._lock:
                if self.channel.is_closed:
                    self.channel.release()
                    return False
                if self._cursor == seq:
                    delivered = self.channel.deliver(items)
                    self._cursor += 1
                    self._turn.notify_waiters()
                    return delivered
                waiter = self._turn.notified()
            await waiter.wait()


class SequencedPermit(Generic[T]):
    """One reserved, numbered slot of an OrderedSender. Usable exactly once."""

    def __init__(self, sender: OrderedSender[T], seq: int):
        self._sender = sender
        self.seq = seq
        self._used = False

    def _consume(self):
        if self._used:
            raise RuntimeError(f"Permit {self.seq} already used")
        self._used = True

    async def send(self, value: T) -> bool:
        """Deliver one value once all earlier permits have sent.

        Returns:
            True if delivered, False if the consumer has gone away.
        """
        self._consume()
        return await self._sender._send(self.seq, [value])

    async def send_many(self, values: Iterable[T]) -> bool:
        """Deliver a batch into this permit's single slot, keeping batch order."""
        self._consume()
        return await self._sender._send(self.seq, list(values))
