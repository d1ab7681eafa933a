"""Factory for creating price fetchers."""

from __future__ import annotations

import logging

from ..config import Settings
from .interface import PriceFetcher

logger = logging.getLogger(__name__)


def create_price_fetcher(settings: Settings) -> PriceFetcher:
    """Create the price fetcher named by ``settings.fetcher``.

    - "browser"   → BrowserPriceFetcher (headless Chromium on TradingView)
    - "simulator" → SimulatedPriceFetcher (GBM random walk, no network)

    The browser is not launched here; it starts on the first fetch.
    """
    if settings.fetcher == "browser":
        from .browser import BrowserPriceFetcher

        logger.info("Price fetcher: headless browser (exchange=%s)", settings.exchange)
        return BrowserPriceFetcher(
            exchange=settings.exchange,
            selector_timeout=settings.fetch_timeout,
        )
    elif settings.fetcher == "simulator":
        from .simulator import SimulatedPriceFetcher

        logger.info("Price fetcher: GBM simulator")
        return SimulatedPriceFetcher()
    raise ValueError(f"Unknown price fetcher: {settings.fetcher!r}")
