"""Async utilities for bounded-concurrency batches of blocking calls."""

import asyncio
import functools
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_with_concurrency(
    n: int,
    *coros: Awaitable[T],
) -> list[T]:
    """Run coroutines with limited concurrency.

    Args:
        n: Maximum number of concurrent coroutines
        *coros: Coroutines to run

    Returns:
        List of results in the same order as input
    """
    semaphore = asyncio.Semaphore(max(1, n))

    async def sem_coro(coro: Awaitable[T]) -> T:
        async with semaphore:
            return await coro

    return await asyncio.gather(*[sem_coro(coro) for coro in coros])


async def run_blocking(func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
    """Run a blocking callable in the default thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))


async def map_blocking(
    func: Callable[[T], R],
    items: Iterable[T],
    concurrency: int = 1,
) -> list[R]:
    """Apply a blocking function to items with limited concurrency.

    Args:
        func: Blocking function to apply
        items: Items to process
        concurrency: Maximum concurrent calls

    Returns:
        List of results, ordered like ``items``
    """
    return await gather_with_concurrency(
        concurrency,
        *[run_blocking(func, item) for item in items],
    )


def run_sync(coro: Awaitable[T]) -> T:
    """Run an async function synchronously.

    This is useful for integrating async code with Click commands.

    Args:
        coro: Coroutine to run

    Returns:
        Result of the coroutine
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop and loop.is_running():
        # If we're already in an async context, create a new loop
        import concurrent.futures

        with concurrent.futures.ThreadPoolExecutor() as pool:
            future = pool.submit(asyncio.run, coro)
            return future.result()
    else:
        return asyncio.run(coro)
