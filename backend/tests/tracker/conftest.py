"""Fixtures for tracker tests.

``make_fetcher`` builds a scripted PriceFetcher: each symbol maps to a
``(delay_seconds, outcome)`` pair, where the outcome is either the price
string to return or an exception instance to raise.
"""

from __future__ import annotations

import asyncio

import pytest

from app.tracker.cancellation import sleep
from app.tracker.exceptions import FetchCancelled
from app.tracker.interface import PriceFetcher


class FakeFetcher(PriceFetcher):
    """Scripted fetcher that records calls, cancellations and concurrency."""

    def __init__(self, outcomes=None, default=(0.0, "1.00 USDT")):
        self._outcomes = dict(outcomes or {})
        self._default = default
        self.calls: list[str] = []
        self.cancelled: list[str] = []  # token fired mid-fetch
        self.aborted: list[str] = []  # task cancelled mid-fetch
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch(self, symbol: str, cancel: asyncio.Event) -> str:
        self.calls.append(symbol)
        delay, outcome = self._outcomes.get(symbol, self._default)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if await sleep(delay, cancel):
                self.cancelled.append(symbol)
                raise FetchCancelled(symbol)
        except asyncio.CancelledError:
            self.aborted.append(symbol)
            raise
        finally:
            self.in_flight -= 1

        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_fetcher():
    """Factory fixture: make_fetcher({"BTCUSDT": (0.01, "50000 USDT")})."""
    return FakeFetcher
