"""Per-client ticker tracking for the live price tracker.

Public API:
    PriceResult         - One symbol's price or error from one poll cycle
    SymbolSet           - Thread-safe set of normalized ticker symbols
    SessionRegistry     - Process-wide map of client id to ClientSession
    PriceFetcher        - Abstract interface for price providers
    run_cycle           - Poll cycle engine, yields results as they settle
    StreamDriver        - Repeats poll cycles for a client until cancelled
    TickerService       - ModifyTickers / StreamPrices surface
    create_price_fetcher - Factory that selects the browser or simulator fetcher
    create_tracker_router - FastAPI router factory for the HTTP/SSE endpoints
"""

from .driver import StreamDriver
from .exceptions import FetchCancelled, FetchError, InvalidRequest, TrackerError
from .factory import create_price_fetcher
from .interface import PriceFetcher
from .models import ModifyTickersResult, PriceResult
from .poller import run_cycle
from .service import TickerService
from .sessions import ClientSession, SessionRegistry
from .stream import create_tracker_router
from .symbols import SymbolSet

__all__ = [
    "ClientSession",
    "FetchCancelled",
    "FetchError",
    "InvalidRequest",
    "ModifyTickersResult",
    "PriceFetcher",
    "PriceResult",
    "SessionRegistry",
    "StreamDriver",
    "SymbolSet",
    "TickerService",
    "TrackerError",
    "create_price_fetcher",
    "create_tracker_router",
    "run_cycle",
]
