"""Bounded, closable work queue between the ingestor and the scanner pool."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from depscan.engines.package_scanner.models import SearchResultItem

_CLOSED = object()


class QueueClosed(Exception):
    """Raised by :meth:`WorkQueue.get` once the queue is closed and drained."""


class WorkQueue:
    """Single-writer / multi-reader bounded queue with end-of-stream.

    ``put`` waits while the queue is full, which is what throttles the
    ingestor to the scanners' pace. ``close`` may be called once; readers
    keep draining until the queue is empty and then see :class:`QueueClosed`.
    """

    def __init__(self, capacity: int = 1000) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self.capacity = capacity
        # One extra slot so the end-of-stream marker never waits on readers.
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity + 1)
        self._slots = asyncio.Semaphore(capacity)
        self._closed = False
        self.enqueued = 0
        self.dequeued = 0
        self.high_water = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def depth(self) -> int:
        """Items enqueued but not yet dequeued."""
        return self.enqueued - self.dequeued

    async def put(self, item: SearchResultItem) -> None:
        if self._closed:
            raise RuntimeError("put() on a closed WorkQueue")
        await self._slots.acquire()
        if self._closed:
            self._slots.release()
            raise RuntimeError("put() on a closed WorkQueue")
        self._queue.put_nowait(item)
        self.enqueued += 1
        self.high_water = max(self.high_water, self.depth)

    async def get(self) -> SearchResultItem:
        item = await self._queue.get()
        if item is _CLOSED:
            # Leave the marker for the next reader.
            self._queue.put_nowait(_CLOSED)
            raise QueueClosed()
        self.dequeued += 1
        self._slots.release()
        return item  # type: ignore[return-value]

    def close(self) -> None:
        """Mark end-of-stream. Idempotent; no further ``put`` is accepted."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[SearchResultItem]:
        while True:
            try:
                yield await self.get()
            except QueueClosed:
                return
