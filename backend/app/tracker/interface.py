"""Abstract interface for price fetchers."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod


class PriceFetcher(ABC):
    """Contract for anything that resolves a ticker symbol to a current price.

    The tracker core is written only against this interface. Implementations
    may be slow (seconds per call) and are expected to honour the cancellation
    token: once ``cancel`` is set, an in-flight ``fetch`` should unwind
    promptly and release any per-call resources.

    Lifecycle:
        fetcher = create_price_fetcher(settings)
        price = await fetcher.fetch("BTCUSDT", cancel)   # e.g. "50000 USDT"
        # ... app shutting down ...
        await fetcher.close()
    """

    @abstractmethod
    async def fetch(self, symbol: str, cancel: asyncio.Event) -> str:
        """Return the current display price for ``symbol``.

        Raises FetchError when the symbol is unknown or extraction fails,
        and FetchCancelled when ``cancel`` fires first.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release shared resources. Safe to call multiple times."""
