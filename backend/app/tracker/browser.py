"""Headless-browser price fetcher that reads TradingView symbol pages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .cancellation import race
from .exceptions import FetchCancelled, FetchError
from .interface import PriceFetcher

logger = logging.getLogger(__name__)

TRADINGVIEW_URL = "https://www.tradingview.com/symbols/{symbol}/?exchange={exchange}"
PRICE_SELECTOR = ".js-symbol-last"
CURRENCY_SELECTOR = ".js-symbol-currency"


class BrowserPriceFetcher(PriceFetcher):
    """PriceFetcher backed by one shared headless Chromium instance.

    The browser is launched lazily on the first fetch and shared by every
    client and symbol; each fetch opens its own page and always closes it.
    ``close()`` tears the browser down once at process shutdown.
    """

    def __init__(
        self,
        exchange: str = "BINANCE",
        selector_timeout: float = 5.0,
        headless: bool = True,
    ) -> None:
        self._exchange = exchange
        self._selector_timeout_ms = int(selector_timeout * 1000)
        self._headless = headless
        self._playwright: Any = None
        self._browser: Any = None
        self._init_lock = asyncio.Lock()
        # Close tasks for pages that finished opening after their fetch was abandoned
        self._closers: set[asyncio.Future] = set()

    async def fetch(self, symbol: str, cancel: asyncio.Event) -> str:
        browser = await self._get_browser()
        page = await self._open_page(browser, symbol, cancel)
        try:
            url = TRADINGVIEW_URL.format(symbol=symbol, exchange=self._exchange)
            await race(page.goto(url, wait_until="domcontentloaded"), cancel)
            await race(
                page.wait_for_selector(PRICE_SELECTOR, timeout=self._selector_timeout_ms),
                cancel,
            )
            price, currency = await race(
                asyncio.gather(
                    page.text_content(PRICE_SELECTOR),
                    page.text_content(CURRENCY_SELECTOR),
                ),
                cancel,
            )
            price = (price or "").strip()
            if not price:
                raise ValueError("empty price element")
        except FetchCancelled:
            raise
        except Exception as e:
            raise FetchError(
                symbol, f"This ticker does not exist on {self._exchange} or failed to load"
            ) from e
        finally:
            await self._close_page(page, symbol)

        return f"{price} {(currency or '').strip()}".strip()

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
            logger.info("Browser closed")
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    # --- Internal ---

    async def _open_page(self, browser: Any, symbol: str, cancel: asyncio.Event) -> Any:
        """Create a page, racing the token. A page that arrives too late is closed."""
        opening = asyncio.ensure_future(browser.new_page())
        try:
            return await race(asyncio.shield(opening), cancel)
        except (FetchCancelled, asyncio.CancelledError):
            opening.add_done_callback(lambda task: self._close_late_page(task, symbol))
            raise
        except Exception as e:
            raise FetchError(symbol, f"Could not open a page for {symbol}") from e

    def _close_late_page(self, opening: asyncio.Future, symbol: str) -> None:
        if opening.cancelled() or opening.exception() is not None:
            return
        closer = asyncio.ensure_future(self._close_page(opening.result(), symbol))
        self._closers.add(closer)
        closer.add_done_callback(self._closers.discard)

    @staticmethod
    async def _close_page(page: Any, symbol: str) -> None:
        try:
            await page.close()
        except Exception:
            logger.exception("Error closing page for %s", symbol)

    async def _get_browser(self) -> Any:
        """Return the shared browser, launching it on first use."""
        if self._browser is None:
            async with self._init_lock:
                if self._browser is None:
                    self._playwright, self._browser = await self._launch()
                    logger.info("Browser launched and kept alive (headless=%s)", self._headless)
        return self._browser

    async def _launch(self) -> tuple[Any, Any]:
        # Lazy import: playwright is only needed when actually scraping
        from playwright.async_api import async_playwright

        playwright = await async_playwright().start()
        try:
            browser = await playwright.chromium.launch(headless=self._headless)
        except Exception:
            await playwright.stop()
            raise
        return playwright, browser
