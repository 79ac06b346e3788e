"""
Simulation constants and default configuration values.

Values are organized by category. Anything a user may want to change at
runtime lives in TradingSettings instead; these are the compiled-in
defaults and tunables.
"""

from typing import Final


# =============================================================================
# Detection
# =============================================================================

# Candidates at or below these absolute profit percentages are noise
TRIANGULAR_NOISE_FLOOR_PCT: Final[float] = 0.2
CROSS_EXCHANGE_NOISE_FLOOR_PCT: Final[float] = 0.3

# Cross-exchange paths span this many venues
MIN_CROSS_EXCHANGE_LEGS: Final[int] = 2
MAX_CROSS_EXCHANGE_LEGS: Final[int] = 3

# Starting asset for discovered triangular cycles
DEFAULT_CYCLE_BASE_ASSET: Final[str] = "USDT"


# =============================================================================
# Fingerprinting
# =============================================================================

FINGERPRINT_LENGTH: Final[int] = 32
FINGERPRINT_SPREAD_DECIMALS: Final[int] = 4
FINGERPRINT_DELIMITER: Final[str] = "|"


# =============================================================================
# Admission Control
# =============================================================================

# Sequential-execution window, as a multiple of the cooldown
SEQUENTIAL_WINDOW_MULTIPLIER: Final[int] = 10

DEFAULT_MAX_EXECUTIONS_PER_OPPORTUNITY: Final[int] = 3
DEFAULT_MAX_EXPOSURE_PER_OPPORTUNITY: Final[float] = 5000.0
DEFAULT_MIN_COOLDOWN_MS: Final[int] = 60_000
DEFAULT_MAX_SEQUENTIAL_EXECUTIONS: Final[int] = 2

# Bounds for the per-fingerprint execution stats table
DEFAULT_STATS_TTL_SECONDS: Final[float] = 24 * 60 * 60
DEFAULT_MAX_TRACKED_FINGERPRINTS: Final[int] = 10_000


# =============================================================================
# Execution
# =============================================================================

# Per-hop probability of a simulated connectivity/liquidity failure
HOP_FAILURE_PROBABILITY: Final[float] = 0.1

DEFAULT_SIMULATION_PRINCIPAL: Final[float] = 1000.0
DEFAULT_MAX_EXPOSURE_PER_TRADE: Final[float] = 1000.0
DEFAULT_MIN_PROFIT_PERCENT: Final[float] = 0.5

# Backtests trade this share of capital per opportunity, capped
BACKTEST_CAPITAL_FRACTION: Final[float] = 0.1
BACKTEST_MAX_TRADE_AMOUNT: Final[float] = 1000.0
BACKTEST_DRAWS_PER_DAY: Final[int] = 5


# =============================================================================
# Markets
# =============================================================================

DEFAULT_EXCHANGES: Final[tuple[str, ...]] = ("binance", "coinbase", "kraken")

DEFAULT_PAIRS: Final[tuple[str, ...]] = (
    "BTC/USDT",
    "ETH/USDT",
    "BNB/USDT",
    "ETH/BTC",
    "BNB/ETH",
)

# Reference prices the simulated oracle perturbs
DEFAULT_BASE_PRICES: Final[dict[str, float]] = {
    "BTC/USDT": 45000.0,
    "ETH/USDT": 2500.0,
    "BNB/USDT": 350.0,
    "SOL/USDT": 100.0,
    "ETH/BTC": 0.0555,
    "BNB/BTC": 0.0078,
    "BNB/ETH": 0.14,
    "SOL/BTC": 0.0022,
}

# Percent values (0.1 = 0.1%)
DEFAULT_TRANSFER_FEES_PCT: Final[dict[str, float]] = {
    "binance": 0.1,
    "coinbase": 0.15,
    "kraken": 0.12,
}
DEFAULT_TRADING_FEE_PCT: Final[float] = 0.1
DEFAULT_MAX_TRADE_AMOUNT: Final[float] = 10_000.0

# Relative noise amplitude of simulated quotes (0.02 = +/-1%)
DEFAULT_PRICE_VOLATILITY: Final[float] = 0.02


# =============================================================================
# Scheduling
# =============================================================================

PRICE_REFRESH_INTERVAL_SECONDS: Final[float] = 3.0
DETECTION_INTERVAL_SECONDS: Final[float] = 10.0


# =============================================================================
# Record Store Bounds
# =============================================================================

DEFAULT_OPPORTUNITY_TTL_SECONDS: Final[float] = 15 * 60
DEFAULT_MAX_OPPORTUNITIES: Final[int] = 500
ACTIVE_OPPORTUNITY_LIMIT: Final[int] = 20
DEFAULT_MAX_TRADES: Final[int] = 10_000
DEFAULT_MAX_PRICE_TICKS: Final[int] = 1_000
DEFAULT_MAX_NOTIFICATIONS: Final[int] = 1_000
RECENT_TRADES_LIMIT: Final[int] = 50


# =============================================================================
# Broadcasting
# =============================================================================

# Per-subscriber buffer; events beyond it are dropped for that subscriber
SUBSCRIBER_QUEUE_SIZE: Final[int] = 256


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
LATENCY_WINDOW_SIZE: Final[int] = 1_000
