"""Thread-safe per-client set of tracked symbols."""

from __future__ import annotations

from threading import Lock


def normalize_symbol(symbol: str) -> str:
    """Canonical form of a ticker symbol: stripped and uppercased."""
    return symbol.strip().upper()


class SymbolSet:
    """Unique, uppercase-normalized symbols tracked for one client.

    Writers: the modify-tickers path (add/remove) and the poll cycle (evict).
    Readers: the stream driver, which takes one snapshot per cycle.
    """

    def __init__(self, symbols: list[str] | None = None) -> None:
        # dict keeps insertion order, so snapshots are stable across cycles
        self._symbols: dict[str, None] = {}
        self._lock = Lock()
        for symbol in symbols or []:
            self.add(symbol)

    def add(self, symbol: str) -> bool:
        """Insert a symbol. Returns False if it was already tracked or blank."""
        symbol = normalize_symbol(symbol)
        if not symbol:
            return False
        with self._lock:
            if symbol in self._symbols:
                return False
            self._symbols[symbol] = None
            return True

    def remove(self, symbol: str) -> bool:
        """Delete a symbol. Returns False if it was not tracked."""
        symbol = normalize_symbol(symbol)
        with self._lock:
            if symbol not in self._symbols:
                return False
            del self._symbols[symbol]
            return True

    def evict(self, symbol: str) -> bool:
        """Drop a symbol whose fetch failed so later cycles skip it."""
        return self.remove(symbol)

    def snapshot(self) -> list[str]:
        """Point-in-time copy. Later mutations do not affect it."""
        with self._lock:
            return list(self._symbols)

    def __len__(self) -> int:
        with self._lock:
            return len(self._symbols)

    def __contains__(self, symbol: str) -> bool:
        symbol = normalize_symbol(symbol)
        with self._lock:
            return symbol in self._symbols
