"""Exception hierarchy for the ticker tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all tracker errors."""


class InvalidRequest(TrackerError):
    """A call arrived without a usable client identifier."""


class FetchError(TrackerError):
    """The price fetcher could not produce a value for a symbol."""

    def __init__(self, symbol: str, message: str) -> None:
        super().__init__(message)
        self.symbol = symbol


class FetchCancelled(TrackerError):
    """The cancellation token fired while an operation was suspended."""
