"""Stream driver: repeated poll cycles for one client until cancelled."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from enum import Enum

from . import cancellation
from .interface import PriceFetcher
from .models import PriceResult
from .poller import DEFAULT_FETCH_TIMEOUT, run_cycle
from .sessions import SessionRegistry

logger = logging.getLogger(__name__)


class StreamState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    WAITING = "waiting"
    TERMINATED = "terminated"


class StreamDriver:
    """Drives poll cycles at a fixed cadence for each subscribed client.

    One driver is shared by all clients; each call to ``stream`` is an
    independent subscription with its own cancellation token. The loop never
    finishes on its own. It ends when the token is set, when the consumer
    closes the generator, or when the consumer raises into it, and in every
    case the stream releases its session, which is pruned from the
    registry once no other stream for that client is still open.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        fetcher: PriceFetcher,
        poll_interval: float = 1.0,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        max_concurrent_fetches: int = 0,
    ) -> None:
        self._registry = registry
        self._fetcher = fetcher
        self._interval = poll_interval
        self._fetch_timeout = fetch_timeout
        self._max_concurrent = max_concurrent_fetches

    async def stream(self, client_id: str, cancel: asyncio.Event) -> AsyncIterator[PriceResult]:
        """Yield price results for ``client_id`` until ``cancel`` is set.

        Raises InvalidRequest (before yielding anything) for a blank client id.
        """
        session = self._registry.attach(client_id)
        self._transition(client_id, StreamState.IDLE)
        logger.info("Stream opened for %s: %s", client_id, session.symbols.snapshot())

        limiter = asyncio.Semaphore(self._max_concurrent) if self._max_concurrent > 0 else None
        try:
            while not cancel.is_set():
                self._transition(client_id, StreamState.POLLING)
                async with session.cycle_lock:
                    # Fresh snapshot each cycle picks up add/remove made while waiting
                    symbols = session.symbols.snapshot()
                    cycle = run_cycle(
                        symbols,
                        self._fetcher,
                        cancel,
                        live=session.symbols,
                        fetch_timeout=self._fetch_timeout,
                        limiter=limiter,
                    )
                    async with aclosing(cycle) as results:
                        async for result in results:
                            logger.debug("%s %s", result.ticker, result.price or result.error)
                            yield result

                if cancel.is_set():
                    break
                self._transition(client_id, StreamState.WAITING)
                if await cancellation.sleep(self._interval, cancel):
                    break
        finally:
            self._transition(client_id, StreamState.TERMINATED)
            self._registry.detach(session)
            logger.info("Stream ended for client %s", client_id)

    @staticmethod
    def _transition(client_id: str, state: StreamState) -> None:
        logger.debug("Stream %s -> %s", client_id, state.value)
