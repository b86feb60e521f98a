"""Tests for the bounded work queue."""

from __future__ import annotations

import asyncio

import pytest

from depscan.engines.package_scanner.models import SearchResultItem
from depscan.engines.package_scanner.work_queue import QueueClosed, WorkQueue


def _item(n: int) -> SearchResultItem:
    return SearchResultItem(package_id=f"Pkg{n}", version_text="1.0.0")


@pytest.mark.asyncio
async def test_put_blocks_when_full():
    queue = WorkQueue(capacity=2)
    await queue.put(_item(1))
    await queue.put(_item(2))

    blocked = asyncio.create_task(queue.put(_item(3)))
    await asyncio.sleep(0.01)
    assert not blocked.done()
    assert queue.depth == 2

    got = await queue.get()
    assert got.package_id == "Pkg1"
    await asyncio.wait_for(blocked, timeout=1.0)
    assert queue.depth == 2
    assert queue.high_water == 2


@pytest.mark.asyncio
async def test_fifo_then_closed():
    queue = WorkQueue(capacity=5)
    for n in range(3):
        await queue.put(_item(n))
    queue.close()

    drained = [item.package_id async for item in queue]
    assert drained == ["Pkg0", "Pkg1", "Pkg2"]
    with pytest.raises(QueueClosed):
        await queue.get()


@pytest.mark.asyncio
async def test_close_wakes_every_waiting_reader():
    queue = WorkQueue(capacity=3)

    async def reader() -> str:
        try:
            await queue.get()
        except QueueClosed:
            return "closed"
        return "item"

    readers = [asyncio.create_task(reader()) for _ in range(4)]
    await asyncio.sleep(0.01)
    queue.close()
    results = await asyncio.wait_for(asyncio.gather(*readers), timeout=1.0)
    assert results == ["closed"] * 4


@pytest.mark.asyncio
async def test_close_with_full_queue_does_not_block():
    queue = WorkQueue(capacity=1)
    await queue.put(_item(1))
    queue.close()
    assert queue.closed
    assert (await queue.get()).package_id == "Pkg1"
    with pytest.raises(QueueClosed):
        await queue.get()


@pytest.mark.asyncio
async def test_put_after_close_rejected():
    queue = WorkQueue(capacity=1)
    queue.close()
    queue.close()  # idempotent
    with pytest.raises(RuntimeError):
        await queue.put(_item(1))


@pytest.mark.asyncio
async def test_many_readers_drain_exactly_once():
    queue = WorkQueue(capacity=4)
    seen: list[str] = []

    async def producer() -> None:
        for n in range(100):
            await queue.put(_item(n))
            assert queue.depth <= queue.capacity
        queue.close()

    async def consumer() -> None:
        async for item in queue:
            seen.append(item.package_id)
            await asyncio.sleep(0)

    await asyncio.gather(producer(), *(consumer() for _ in range(5)))
    assert sorted(seen) == sorted(f"Pkg{n}" for n in range(100))
    assert len(seen) == len(set(seen))
    assert queue.enqueued == queue.dequeued == 100
    assert queue.high_water <= 4


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        WorkQueue(capacity=0)
