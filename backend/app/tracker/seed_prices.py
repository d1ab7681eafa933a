"""Seed prices and per-symbol parameters for the simulated fetcher."""

# Realistic starting prices for commonly tracked pairs (as of project creation)
SEED_PRICES: dict[str, float] = {
    "BTCUSDT": 50000.00,
    "ETHUSDT": 3000.00,
    "BNBUSDT": 550.00,
    "SOLUSDT": 140.00,
    "XRPUSDT": 0.55,
    "ADAUSDT": 0.45,
    "DOGEUSDT": 0.15,
    "ETHBTC": 0.055,
}

# Per-symbol GBM parameters
# sigma: annualized volatility (higher = more price movement)
# mu: annualized drift / expected return
SYMBOL_PARAMS: dict[str, dict[str, float]] = {
    "BTCUSDT": {"sigma": 0.60, "mu": 0.10},
    "ETHUSDT": {"sigma": 0.75, "mu": 0.10},
    "BNBUSDT": {"sigma": 0.70, "mu": 0.08},
    "SOLUSDT": {"sigma": 1.00, "mu": 0.10},
    "DOGEUSDT": {"sigma": 1.20, "mu": 0.05},  # Meme coin, very noisy
    "ETHBTC": {"sigma": 0.40, "mu": 0.00},
}

# Default parameters for symbols not in the list above (dynamically added)
DEFAULT_PARAMS: dict[str, float] = {"sigma": 0.80, "mu": 0.05}

# Quote currencies recognised at the end of a pair symbol, longest first
QUOTE_CURRENCIES: tuple[str, ...] = ("FDUSD", "USDT", "USDC", "BUSD", "BTC", "ETH", "BNB", "EUR", "USD")
DEFAULT_QUOTE = "USD"
