"""Cooperative cancellation helpers built on an ``asyncio.Event`` token.

Every suspension point that belongs to a client stream goes through one of
these helpers, so setting the stream's token unwinds all of them.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from .exceptions import FetchCancelled

T = TypeVar("T")


async def race(aw: Awaitable[T], cancel: asyncio.Event) -> T:
    """Await ``aw`` unless ``cancel`` fires first.

    If the token wins, the operation is cancelled and awaited before
    FetchCancelled is raised, so its cleanup has run by the time we return.
    """
    if cancel.is_set():
        if asyncio.iscoroutine(aw):
            aw.close()
        elif asyncio.isfuture(aw):
            aw.cancel()
        raise FetchCancelled("cancelled before start")

    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    if task in done:
        return task.result()
    raise FetchCancelled("cancelled while in flight")


async def sleep(delay: float, cancel: asyncio.Event) -> bool:
    """Sleep for ``delay`` seconds. Returns True if cancelled before it elapsed."""
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except asyncio.TimeoutError:
        return False
    return True
