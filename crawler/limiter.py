"""Counting semaphore bounding simultaneous fetch-and-parse tasks."""

import asyncio

DEFAULT_PAGE_CONCURRENCY = 100
DEFAULT_ITEM_CONCURRENCY = 50


class ConcurrencyLimiter:
    """Caps the number of tasks inside `async with limiter:` at `capacity`.

    Each pipeline stage owns its own instance; sharing one between listing
    pages and chapters would let one stage starve the other.
    """

    def __init__(self, capacity: int = DEFAULT_PAGE_CONCURRENCY, name: str = ""):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = capacity
        self.name = name
        self._sem = asyncio.Semaphore(capacity)
        self._in_flight = 0
        self.peak = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    async def acquire(self):
        await self._sem.acquire()
        self._in_flight += 1
        self.peak = max(self.peak, self._in_flight)

    def release(self):
        self._in_flight -= 1
        self._sem.release()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __repr__(self) -> str:
        return f"ConcurrencyLimiter({self.name or 'unnamed'}, {self._in_flight}/{self.capacity})"
