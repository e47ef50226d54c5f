"""Bounded-concurrency helpers for asyncio."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


async def gather_batched(limit: int, items: Iterable[T], fn: Callable[[T], Awaitable[R]]) -> list[R]:
    """
    Run a coroutine function over items with at most ``limit`` in flight.

    Parameters
    ----------
    limit : int
        Maximum number of concurrently running calls
    items : Iterable[T]
        Inputs
    fn : Callable[[T], Awaitable[R]]
        Coroutine function applied to each input

    Returns
    -------
    list[R]
        Results in input order

    Raises
    ------
    ValueError
        If limit is lower than 1

    """
    if limit < 1:
        msg = f"limit must be >= 1, got {limit}"
        raise ValueError(msg)

    semaphore = asyncio.Semaphore(limit)

    async def run(item: T) -> R:
        async with semaphore:
            return await fn(item)

    return list(await asyncio.gather(*(run(item) for item in items)))
