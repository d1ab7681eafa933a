"""Poll cycle engine: fetch every symbol concurrently, yield as each settles."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator

from . import cancellation
from .exceptions import FetchCancelled, FetchError
from .interface import PriceFetcher
from .models import PriceResult
from .symbols import SymbolSet

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT = 5.0


async def run_cycle(
    symbols: list[str],
    fetcher: PriceFetcher,
    cancel: asyncio.Event,
    *,
    live: SymbolSet | None = None,
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
    limiter: asyncio.Semaphore | None = None,
) -> AsyncIterator[PriceResult]:
    """Run one poll cycle over a snapshot of symbols.

    Yields a PriceResult for each symbol in the order the fetches settle,
    not the order of ``symbols``. Failed symbols are evicted from ``live``
    before their error result is yielded. Fetches aborted by ``cancel`` are
    dropped silently, and once ``cancel`` is set nothing further is yielded.

    The generator is finite and not restartable. Pending fetches are
    cancelled whenever it exits, including when the consumer closes it early.
    """
    if not symbols:
        return

    tasks = [
        asyncio.create_task(
            _fetch_one(symbol, fetcher, cancel, fetch_timeout, limiter),
            name=f"fetch-{symbol}",
        )
        for symbol in symbols
    ]
    try:
        for settled in asyncio.as_completed(tasks):
            result = await settled
            if cancel.is_set():
                return
            if result is None:
                continue
            if result.is_error and live is not None:
                if live.evict(result.ticker):
                    logger.warning("Evicted %s after failed fetch: %s", result.ticker, result.error)
            yield result
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def _fetch_one(
    symbol: str,
    fetcher: PriceFetcher,
    cancel: asyncio.Event,
    timeout: float,
    limiter: asyncio.Semaphore | None,
) -> PriceResult | None:
    """Fetch a single symbol. Returns None if the fetch was cancelled."""
    try:
        async with limiter if limiter is not None else contextlib.nullcontext():
            if cancel.is_set():
                return None
            price = await cancellation.race(
                asyncio.wait_for(fetcher.fetch(symbol, cancel), timeout=timeout),
                cancel,
            )
    except FetchCancelled:
        return None
    except asyncio.TimeoutError:
        logger.warning("Fetch for %s timed out after %.1fs", symbol, timeout)
        return PriceResult.failed(symbol, f"Timed out after {timeout:g}s")
    except FetchError as e:
        logger.warning("Fetch for %s failed: %s", symbol, e)
        return PriceResult.failed(symbol, str(e))
    except Exception:
        logger.exception("Unexpected error fetching %s", symbol)
        return PriceResult.failed(symbol, "Failed to process ticker")

    # A success that raced a late cancellation is still dropped
    if cancel.is_set():
        return None
    return PriceResult.ok(symbol, price)
