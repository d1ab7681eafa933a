"""Tests for the poll cycle engine."""

import asyncio
from contextlib import aclosing

import pytest

from app.tracker.exceptions import FetchError
from app.tracker.poller import run_cycle
from app.tracker.symbols import SymbolSet


async def _collect(cycle):
    async with aclosing(cycle) as results:
        return [result async for result in results]


@pytest.mark.asyncio
class TestRunCycle:
    """Unit tests for run_cycle with a scripted fetcher."""

    async def test_empty_snapshot_makes_no_calls(self, make_fetcher):
        """Test that an empty snapshot yields nothing and never calls the fetcher."""
        fetcher = make_fetcher()
        results = await _collect(run_cycle([], fetcher, asyncio.Event()))
        assert results == []
        assert fetcher.calls == []

    async def test_fetches_every_symbol(self, make_fetcher):
        """Test that each symbol produces one result."""
        fetcher = make_fetcher({"BTCUSDT": (0.0, "50000 USDT"), "ETHUSDT": (0.0, "3000 USDT")})
        results = await _collect(run_cycle(["BTCUSDT", "ETHUSDT"], fetcher, asyncio.Event()))
        assert {r.ticker: r.price for r in results} == {"BTCUSDT": "50000 USDT", "ETHUSDT": "3000 USDT"}

    async def test_yields_in_settlement_order(self, make_fetcher):
        """Test that a fast symbol is yielded before a slow one added earlier."""
        fetcher = make_fetcher({"SLOW": (0.5, "2 USDT"), "FAST": (0.01, "1 USDT")})
        results = await _collect(run_cycle(["SLOW", "FAST"], fetcher, asyncio.Event()))
        assert [r.ticker for r in results] == ["FAST", "SLOW"]

    async def test_fast_result_not_delayed_by_slow(self, make_fetcher):
        """Test that the first result arrives long before the slowest fetch settles."""
        fetcher = make_fetcher({"SLOW": (0.6, "2 USDT"), "FAST": (0.01, "1 USDT")})
        loop = asyncio.get_running_loop()
        start = loop.time()

        async with aclosing(run_cycle(["SLOW", "FAST"], fetcher, asyncio.Event())) as results:
            first = await anext(results)
            first_elapsed = loop.time() - start
            rest = [r async for r in results]

        assert first.ticker == "FAST"
        assert first_elapsed < 0.3
        assert [r.ticker for r in rest] == ["SLOW"]

    async def test_fetches_run_concurrently(self, make_fetcher):
        """Test that a cycle takes about as long as its slowest fetch."""
        fetcher = make_fetcher(default=(0.2, "1 USDT"))
        loop = asyncio.get_running_loop()
        start = loop.time()
        results = await _collect(run_cycle(["A", "B", "C", "D"], fetcher, asyncio.Event()))
        assert len(results) == 4
        assert loop.time() - start < 0.6
        assert fetcher.max_in_flight == 4

    async def test_fetch_error_yields_error_and_evicts(self, make_fetcher):
        """Test that a FetchError becomes an error result and the symbol is evicted."""
        live = SymbolSet(["BTCUSDT", "TYPO"])
        fetcher = make_fetcher(
            {"BTCUSDT": (0.0, "50000 USDT"), "TYPO": (0.0, FetchError("TYPO", "does not exist"))}
        )
        results = await _collect(run_cycle(live.snapshot(), fetcher, asyncio.Event(), live=live))

        by_ticker = {r.ticker: r for r in results}
        assert by_ticker["TYPO"].error == "does not exist"
        assert by_ticker["TYPO"].price is None
        assert by_ticker["BTCUSDT"].price == "50000 USDT"
        assert live.snapshot() == ["BTCUSDT"]

    async def test_symbol_evicted_before_error_is_yielded(self, make_fetcher):
        """Test that the live set no longer has the symbol when its error arrives."""
        live = SymbolSet(["TYPO"])
        fetcher = make_fetcher({"TYPO": (0.0, FetchError("TYPO", "nope"))})
        async with aclosing(run_cycle(live.snapshot(), fetcher, asyncio.Event(), live=live)) as results:
            result = await anext(results)
            assert result.is_error
            assert "TYPO" not in live

    async def test_unexpected_error_is_isolated(self, make_fetcher):
        """Test that an arbitrary exception fails only its own symbol."""
        live = SymbolSet(["BTCUSDT", "BROKEN"])
        fetcher = make_fetcher(
            {"BTCUSDT": (0.05, "50000 USDT"), "BROKEN": (0.0, RuntimeError("kaboom"))}
        )
        results = await _collect(run_cycle(live.snapshot(), fetcher, asyncio.Event(), live=live))

        assert [r.ticker for r in results] == ["BROKEN", "BTCUSDT"]
        assert results[0].error == "Failed to process ticker"
        assert results[1].price == "50000 USDT"
        assert live.snapshot() == ["BTCUSDT"]

    async def test_hung_fetch_times_out(self, make_fetcher):
        """Test that a fetch that never resolves becomes a failure after the timeout."""
        live = SymbolSet(["HANG", "BTCUSDT"])
        fetcher = make_fetcher({"HANG": (30.0, "never"), "BTCUSDT": (0.0, "50000 USDT")})
        loop = asyncio.get_running_loop()
        start = loop.time()

        results = await _collect(
            run_cycle(live.snapshot(), fetcher, asyncio.Event(), live=live, fetch_timeout=0.1)
        )

        assert loop.time() - start < 1.0
        assert [r.ticker for r in results] == ["BTCUSDT", "HANG"]
        assert "Timed out" in results[1].error
        assert "HANG" not in live
        assert fetcher.aborted == ["HANG"]

    async def test_no_eviction_without_live_set(self, make_fetcher):
        """Test that the engine still yields errors when no live set is given."""
        fetcher = make_fetcher({"TYPO": (0.0, FetchError("TYPO", "nope"))})
        results = await _collect(run_cycle(["TYPO"], fetcher, asyncio.Event()))
        assert results[0].error == "nope"

    async def test_cancel_mid_fetch_drops_results(self, make_fetcher):
        """Test that cancelling during fetches yields nothing and evicts nothing."""
        live = SymbolSet(["BTCUSDT", "ETHUSDT"])
        fetcher = make_fetcher(default=(5.0, "1 USDT"))
        cancel = asyncio.Event()
        loop = asyncio.get_running_loop()
        loop.call_later(0.05, cancel.set)
        start = loop.time()

        results = await _collect(run_cycle(live.snapshot(), fetcher, cancel, live=live))

        assert results == []
        assert loop.time() - start < 1.0
        # Each fetch unwinds either by observing the token or by being cancelled
        assert sorted(fetcher.cancelled + fetcher.aborted) == ["BTCUSDT", "ETHUSDT"]
        assert fetcher.in_flight == 0
        assert live.snapshot() == ["BTCUSDT", "ETHUSDT"]

    async def test_cancel_during_enumeration_stops_yielding(self, make_fetcher):
        """Test that setting the token between results ends the cycle early."""
        fetcher = make_fetcher({"FAST": (0.0, "1 USDT"), "SLOW": (0.3, "2 USDT")})
        cancel = asyncio.Event()
        received = []

        async with aclosing(run_cycle(["FAST", "SLOW"], fetcher, cancel)) as results:
            async for result in results:
                received.append(result)
                cancel.set()

        assert [r.ticker for r in received] == ["FAST"]

    async def test_already_cancelled_makes_no_calls(self, make_fetcher):
        """Test that a pre-set token short-circuits every fetch."""
        fetcher = make_fetcher()
        cancel = asyncio.Event()
        cancel.set()
        results = await _collect(run_cycle(["BTCUSDT"], fetcher, cancel))
        assert results == []
        assert fetcher.calls == []

    async def test_early_close_cancels_pending_fetches(self, make_fetcher):
        """Test that closing the generator aborts the fetches still in flight."""
        fetcher = make_fetcher({"FAST": (0.0, "1 USDT"), "SLOW": (5.0, "2 USDT")})
        cycle = run_cycle(["FAST", "SLOW"], fetcher, asyncio.Event())

        first = await anext(cycle)
        await cycle.aclose()

        assert first.ticker == "FAST"
        assert fetcher.aborted == ["SLOW"]
        assert fetcher.in_flight == 0

    async def test_limiter_caps_in_flight_fetches(self, make_fetcher):
        """Test that a semaphore bounds concurrency but every symbol still reports."""
        fetcher = make_fetcher(default=(0.02, "1 USDT"))
        results = await _collect(
            run_cycle(["A", "B", "C", "D", "E"], fetcher, asyncio.Event(), limiter=asyncio.Semaphore(2))
        )
        assert len(results) == 5
        assert fetcher.max_in_flight == 2

    async def test_limiter_preserves_settlement_order(self, make_fetcher):
        """Test that results still arrive as each fetch completes under a cap."""
        fetcher = make_fetcher({"SLOW": (0.3, "2 USDT"), "FAST": (0.01, "1 USDT")})
        results = await _collect(
            run_cycle(["SLOW", "FAST"], fetcher, asyncio.Event(), limiter=asyncio.Semaphore(2))
        )
        assert [r.ticker for r in results] == ["FAST", "SLOW"]
