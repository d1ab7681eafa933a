"""Transport-agnostic ticker service: ModifyTickers and StreamPrices."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from .driver import StreamDriver
from .exceptions import InvalidRequest
from .models import ModifyTickersResult, PriceResult
from .sessions import SessionRegistry
from .symbols import normalize_symbol

logger = logging.getLogger(__name__)


class TickerService:
    """The two calls a client makes, independent of how they arrive.

    Clients register interest with ``modify_tickers`` and keep one
    ``stream_prices`` call open for as long as they are connected.
    """

    def __init__(self, registry: SessionRegistry, driver: StreamDriver) -> None:
        self._registry = registry
        self._driver = driver

    def modify_tickers(
        self,
        client_id: str | None,
        add: str | None = None,
        remove: str | None = None,
    ) -> ModifyTickersResult:
        """Add and/or remove one symbol for a client. ``add`` is applied first."""
        try:
            session = self._registry.get_or_create(client_id)
        except InvalidRequest:
            logger.info("modify_tickers: missing client_id")
            return ModifyTickersResult(success=False)

        if add:
            if session.symbols.add(add):
                logger.info("Added ticker for %s: %s", client_id, normalize_symbol(add))
        if remove:
            if session.symbols.remove(remove):
                logger.info("Removed ticker for %s: %s", client_id, normalize_symbol(remove))

        logger.debug("Current tickers for %s: %s", client_id, session.symbols.snapshot())
        return ModifyTickersResult(success=True)

    def get_tickers(self, client_id: str) -> list[str]:
        session = self._registry.get(client_id)
        return session.symbols.snapshot() if session else []

    async def stream_prices(
        self, client_id: str | None, cancel: asyncio.Event
    ) -> AsyncIterator[PriceResult]:
        """Stream results for ``client_id`` until ``cancel`` is set.

        A blank client id ends the stream immediately instead of raising.
        """
        if not client_id or not client_id.strip():
            logger.info("stream_prices: missing client_id")
            return

        async with aclosing(self._driver.stream(client_id, cancel)) as results:
            async for result in results:
                yield result
