"""Process configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field


def _env_float(name: str, default: float, *, positive: bool = False) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if positive and not value > 0:
        raise ValueError(f"{name} must be greater than 0, got {raw!r}")
    return value


def _env_int(name: str, default: int, *, minimum: int | None = None, maximum: int | None = None) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be at least {minimum}, got {raw!r}")
    if maximum is not None and value > maximum:
        raise ValueError(f"{name} must be at most {maximum}, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    """Everything the service reads from its environment."""

    host: str = "0.0.0.0"
    port: int = 8080
    allowed_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000"])
    fetcher: str = "browser"
    poll_interval: float = 1.0
    fetch_timeout: float = 5.0
    max_concurrent_fetches: int = 0  # 0 = one task per symbol, no cap
    exchange: str = "BINANCE"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from TRACKER_* variables, falling back to defaults.

        Raises ValueError naming the variable when a numeric value is malformed
        or out of range.
        """
        origins = os.environ.get("TRACKER_ALLOWED_ORIGINS", "").strip()
        return cls(
            host=os.environ.get("TRACKER_HOST", "").strip() or cls.host,
            port=_env_int("TRACKER_PORT", cls.port, minimum=1, maximum=65535),
            allowed_origins=(
                [o.strip() for o in origins.split(",") if o.strip()]
                if origins
                else ["http://localhost:3000"]
            ),
            fetcher=os.environ.get("TRACKER_FETCHER", "").strip().lower() or cls.fetcher,
            poll_interval=_env_float("TRACKER_POLL_INTERVAL", cls.poll_interval, positive=True),
            fetch_timeout=_env_float("TRACKER_FETCH_TIMEOUT", cls.fetch_timeout, positive=True),
            max_concurrent_fetches=_env_int("TRACKER_MAX_CONCURRENT_FETCHES", cls.max_concurrent_fetches, minimum=0),
            exchange=os.environ.get("TRACKER_EXCHANGE", "").strip().upper() or cls.exchange,
            log_level=os.environ.get("TRACKER_LOG_LEVEL", "").strip().upper() or cls.log_level,
        )
