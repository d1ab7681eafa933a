"""GBM-based simulated price fetcher for local development."""

from __future__ import annotations

import asyncio
import logging
import math
import random
import re
import time
from threading import Lock

import numpy as np

from .cancellation import sleep
from .exceptions import FetchCancelled, FetchError
from .interface import PriceFetcher
from .seed_prices import DEFAULT_PARAMS, DEFAULT_QUOTE, QUOTE_CURRENCIES, SEED_PRICES, SYMBOL_PARAMS

logger = logging.getLogger(__name__)

VALID_SYMBOL = re.compile(r"^[A-Z0-9]{2,20}$")


class GBMSimulator:
    """Geometric Brownian Motion price paths, one per symbol.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Where:
        S(t)   = current price
        mu     = annualized drift (expected return)
        sigma  = annualized volatility
        dt     = elapsed time as a fraction of a year
        Z      = standard normal random variable

    Unlike a ticking simulator, each symbol is advanced lazily by the wall
    time since it was last read. Crypto trades around the clock, so a year
    is 365 * 24h. At most ``max_symbols`` paths are kept; the least recently
    read one is forgotten first and restarts from its seed if read again.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600

    def __init__(
        self,
        event_probability: float = 0.001,
        seed: int | None = None,
        max_symbols: int = 1024,
    ) -> None:
        self._event_prob = event_probability
        self._max_symbols = max_symbols
        self._rng = np.random.default_rng(seed)
        self._random = random.Random(seed)
        self._prices: dict[str, float] = {}
        self._last_step: dict[str, float] = {}
        self._lock = Lock()

    def price(self, symbol: str, now: float | None = None) -> float:
        """Advance ``symbol`` to ``now`` and return its price."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if symbol not in self._prices:
                if len(self._prices) >= self._max_symbols:
                    oldest = next(iter(self._last_step))
                    del self._prices[oldest]
                    del self._last_step[oldest]
                self._prices[symbol] = SEED_PRICES.get(symbol, self._random.uniform(1.0, 500.0))
                self._last_step[symbol] = now
                return self._prices[symbol]

            # Re-insert so _last_step stays ordered from least to most recently read
            dt = max(now - self._last_step.pop(symbol), 0.0) / self.SECONDS_PER_YEAR
            self._last_step[symbol] = now
            params = SYMBOL_PARAMS.get(symbol, DEFAULT_PARAMS)
            mu = params["mu"]
            sigma = params["sigma"]

            drift = (mu - 0.5 * sigma**2) * dt
            diffusion = sigma * math.sqrt(dt) * self._rng.standard_normal()
            self._prices[symbol] *= math.exp(drift + diffusion)

            # Random event: ~0.1% chance per read
            if self._random.random() < self._event_prob:
                shock = self._random.uniform(0.02, 0.05) * self._random.choice([-1, 1])
                self._prices[symbol] *= 1 + shock
                logger.debug("Random event on %s: %.1f%%", symbol, shock * 100)

            return self._prices[symbol]


def quote_currency(symbol: str) -> str:
    """Best-effort quote currency of a pair symbol, e.g. BTCUSDT -> USDT."""
    for quote in QUOTE_CURRENCIES:
        if symbol.endswith(quote) and len(symbol) > len(quote):
            return quote
    return DEFAULT_QUOTE


def format_price(price: float) -> str:
    """Display precision follows magnitude, like an exchange ticker."""
    if price >= 1000:
        return f"{price:.2f}"
    if price >= 1:
        return f"{price:.4f}"
    return f"{price:.6f}"


class SimulatedPriceFetcher(PriceFetcher):
    """PriceFetcher backed by the GBM simulator, with simulated latency.

    Malformed symbols fail the way an unknown ticker would on a real page.
    """

    def __init__(
        self,
        latency: tuple[float, float] = (0.05, 0.5),
        event_probability: float = 0.001,
        seed: int | None = None,
    ) -> None:
        self._latency = latency
        self._sim = GBMSimulator(event_probability=event_probability, seed=seed)
        self._random = random.Random(seed)

    async def fetch(self, symbol: str, cancel: asyncio.Event) -> str:
        if await sleep(self._random.uniform(*self._latency), cancel):
            raise FetchCancelled(f"fetch for {symbol} cancelled")
        if not VALID_SYMBOL.match(symbol):
            raise FetchError(symbol, f"Unknown ticker: {symbol}")

        price = self._sim.price(symbol)
        return f"{format_price(price)} {quote_currency(symbol)}"

    async def close(self) -> None:
        logger.info("Simulated fetcher closed")
