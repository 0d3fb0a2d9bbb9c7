import asyncio
from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")


def first_error(error: BaseException) -> BaseException:
    """Unwrap nested TaskGroup exception groups down to the first real error."""
    while isinstance(error, BaseExceptionGroup):
        error = error.exceptions[0]
    return error


async def _iterate(items: AsyncIterable[T] | Iterable[T]):
    if isinstance(items, AsyncIterable):
        async for item in items:
            yield item
    else:
        for item in items:
            yield item


async def run_bounded(
    items: AsyncIterable[T] | Iterable[T],
    worker: Callable[[T], Awaitable[None]],
    limit: int,
) -> int:
    """
    Run ``worker`` for every item with at most ``limit`` workers in flight.

    Items are pulled lazily, a new one only once a slot is free, so the source
    iterator is never read far ahead of the writes. The first failing worker
    cancels the others and its exception is re-raised unwrapped.

    Returns the number of items processed.
    """
    slots = asyncio.Semaphore(limit)
    processed = 0

    async def _run(item: T):
        try:
            await worker(item)
        finally:
            slots.release()

    try:
        async with asyncio.TaskGroup() as tg:
            async for item in _iterate(items):
                await slots.acquire()
                tg.create_task(_run(item))
                processed += 1
    except BaseExceptionGroup as eg:
        raise first_error(eg) from None

    return processed
