"""Data models for the ticker tracker."""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class PriceResult:
    """Outcome of fetching one symbol in one poll cycle.

    Exactly one of ``price`` and ``error`` is set.
    """

    ticker: str
    price: str | None = None
    error: str | None = None
    timestamp: float = field(default_factory=time.time)  # Unix seconds

    def __post_init__(self) -> None:
        if (self.price is None) == (self.error is None):
            raise ValueError("PriceResult needs exactly one of price or error")

    @classmethod
    def ok(cls, ticker: str, price: str) -> PriceResult:
        return cls(ticker=ticker, price=price)

    @classmethod
    def failed(cls, ticker: str, error: str) -> PriceResult:
        return cls(ticker=ticker, error=error)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        data: dict = {"ticker": self.ticker, "timestamp": self.timestamp}
        if self.is_error:
            data["error"] = self.error
        else:
            data["price"] = self.price
        return data


@dataclass(frozen=True, slots=True)
class ModifyTickersResult:
    """Response to a modify-tickers call. Failure is reported, never raised."""

    success: bool

    def to_dict(self) -> dict:
        return {"success": self.success}
