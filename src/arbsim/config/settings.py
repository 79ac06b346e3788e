"""
Application and trading settings.

AppSettings is process configuration loaded from environment variables
(pydantic-settings). TradingSettings is the user-editable record the
detector, admission controller and execution engine read every cycle;
it is validated with pydantic and never written by the core.
"""

import warnings
from functools import lru_cache
from typing import Literal

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from arbsim.config.constants import (
    DEFAULT_EXCHANGES,
    DEFAULT_MAX_EXECUTIONS_PER_OPPORTUNITY,
    DEFAULT_MAX_EXPOSURE_PER_OPPORTUNITY,
    DEFAULT_MAX_EXPOSURE_PER_TRADE,
    DEFAULT_MAX_NOTIFICATIONS,
    DEFAULT_MAX_OPPORTUNITIES,
    DEFAULT_MAX_PRICE_TICKS,
    DEFAULT_MAX_SEQUENTIAL_EXECUTIONS,
    DEFAULT_MAX_TRACKED_FINGERPRINTS,
    DEFAULT_MAX_TRADE_AMOUNT,
    DEFAULT_MAX_TRADES,
    DEFAULT_MIN_COOLDOWN_MS,
    DEFAULT_MIN_PROFIT_PERCENT,
    DEFAULT_OPPORTUNITY_TTL_SECONDS,
    DEFAULT_PAIRS,
    DEFAULT_PRICE_VOLATILITY,
    DEFAULT_SIMULATION_PRINCIPAL,
    DEFAULT_STATS_TTL_SECONDS,
    DEFAULT_TRADING_FEE_PCT,
    DEFAULT_TRANSFER_FEES_PCT,
    DETECTION_INTERVAL_SECONDS,
    PRICE_REFRESH_INTERVAL_SECONDS,
    SUBSCRIBER_QUEUE_SIZE,
)
from arbsim.core.errors import ValidationError
from arbsim.core.types import ArbitragePath


# =============================================================================
# Trading Settings
# =============================================================================


class ExchangeFees(BaseModel):
    """Fee schedule and trade cap for one exchange (fees in percent)."""

    model_config = ConfigDict(frozen=True)

    transfer_fee_pct: float = Field(default=0.0, ge=0.0, le=10.0)
    trading_fee_pct: float = Field(default=DEFAULT_TRADING_FEE_PCT, ge=0.0, le=10.0)
    max_trade_amount: float = Field(default=DEFAULT_MAX_TRADE_AMOUNT, gt=0.0)


def _default_exchange_fees() -> dict[str, ExchangeFees]:
    return {
        exchange: ExchangeFees(transfer_fee_pct=DEFAULT_TRANSFER_FEES_PCT.get(exchange, 0.0))
        for exchange in DEFAULT_EXCHANGES
    }


class TradingSettings(BaseModel):
    """
    Runtime trading configuration.

    Percent-valued fields use percent units (0.5 = 0.5%). Exchanges with
    no explicit fee record fall back to ExchangeFees() defaults.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # =========================================================================
    # Markets
    # =========================================================================

    enabled_exchanges: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCHANGES))
    enabled_pairs: list[str] = Field(default_factory=lambda: list(DEFAULT_PAIRS))
    exchange_fees: dict[str, ExchangeFees] = Field(default_factory=_default_exchange_fees)

    # =========================================================================
    # Thresholds & Sizing
    # =========================================================================

    min_profit_percent: float = Field(
        default=DEFAULT_MIN_PROFIT_PERCENT,
        ge=0.0,
        le=100.0,
        description="Minimum profit % before an opportunity is auto-traded",
    )
    max_exposure_per_trade: float = Field(
        default=DEFAULT_MAX_EXPOSURE_PER_TRADE,
        gt=0.0,
        description="Maximum amount committed to a single trade",
    )
    simulation_principal: float = Field(
        default=DEFAULT_SIMULATION_PRINCIPAL,
        gt=0.0,
        description="Principal used for simulated and manual trades",
    )

    # =========================================================================
    # Feature Toggles
    # =========================================================================

    enable_triangular_arbitrage: bool = True
    enable_cross_exchange_arbitrage: bool = True
    auto_trade_enabled: bool = False
    notifications_enabled: bool = True
    enable_repeat_autotrade: bool = True

    # =========================================================================
    # Repeat-Trade Thresholds
    # =========================================================================

    max_executions_per_opportunity: int = Field(
        default=DEFAULT_MAX_EXECUTIONS_PER_OPPORTUNITY, ge=1
    )
    max_exposure_per_opportunity: float = Field(
        default=DEFAULT_MAX_EXPOSURE_PER_OPPORTUNITY, gt=0.0
    )
    min_cooldown_ms: int = Field(default=DEFAULT_MIN_COOLDOWN_MS, ge=0)
    max_sequential_executions: int = Field(default=DEFAULT_MAX_SEQUENTIAL_EXECUTIONS, ge=1)

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("enabled_exchanges", "enabled_pairs", mode="after")
    @classmethod
    def validate_unique(cls, v: list[str]) -> list[str]:
        """Reject blank and duplicate entries."""
        if any(not item.strip() for item in v):
            raise ValueError("Entries must be non-empty")
        if len(set(v)) != len(v):
            raise ValueError("Entries must be unique")
        return v

    @field_validator("enabled_pairs", mode="after")
    @classmethod
    def validate_pair_format(cls, v: list[str]) -> list[str]:
        """Pairs are BASE/QUOTE symbols."""
        for pair in v:
            base, sep, quote = pair.partition("/")
            if not sep or not base or not quote:
                raise ValueError(f"Pair {pair!r} is not in BASE/QUOTE form")
        return v

    @model_validator(mode="after")
    def warn_on_unbounded_exposure(self) -> "TradingSettings":
        """Warn if one trade can be larger than the per-opportunity exposure cap."""
        if self._largest_trade_amount() > self.max_exposure_per_opportunity:
            warnings.warn(
                f"A single trade can commit {self._largest_trade_amount():g} "
                "(simulation_principal capped by max_exposure_per_trade), more than "
                f"max_exposure_per_opportunity={self.max_exposure_per_opportunity:g}; "
                "automatic executions on paths without a lower exchange trade cap "
                "will be denied",
                stacklevel=2,
            )
        return self

    def _largest_trade_amount(self) -> float:
        return min(self.simulation_principal, self.max_exposure_per_trade)

    # =========================================================================
    # Helpers
    # =========================================================================

    def fees_for(self, exchange: str) -> ExchangeFees:
        """Get the fee record for an exchange."""
        return self.exchange_fees.get(exchange) or ExchangeFees()

    def trade_amount_for(self, path: ArbitragePath) -> float:
        """
        Amount committed to an automatic trade along `path`.

        The principal, capped by the per-trade exposure limit and the
        trade cap of every exchange on the path.
        """
        caps = [self.fees_for(exchange).max_trade_amount for exchange in path.exchanges]
        return min(self.simulation_principal, self.max_exposure_per_trade, *caps)

    @property
    def enabled_pair_set(self) -> frozenset[str]:
        return frozenset(self.enabled_pairs)

    @classmethod
    def parse(cls, payload: object) -> "TradingSettings":
        """
        Validate an untrusted payload.

        Raises:
            ValidationError: If the payload does not describe valid settings.
        """
        try:
            return cls.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid settings: {e}") from e

    def merged(self, updates: dict[str, object]) -> "TradingSettings":
        """Return a validated copy with `updates` applied."""
        payload = {**self.model_dump(), **updates}
        if self._largest_trade_amount() > self.max_exposure_per_opportunity:
            # Already warned when these settings were built.
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                return self.parse(payload)
        return self.parse(payload)


# =============================================================================
# Application Settings
# =============================================================================


class AppSettings(BaseSettings):
    """
    Process settings loaded from environment variables.

    All settings can be overridden via ARBSIM_* environment variables or
    a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ARBSIM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Scheduling
    # =========================================================================

    price_refresh_interval_s: float = Field(
        default=PRICE_REFRESH_INTERVAL_SECONDS,
        gt=0.0,
        description="Seconds between price refresh ticks",
    )
    detection_interval_s: float = Field(
        default=DETECTION_INTERVAL_SECONDS,
        gt=0.0,
        description="Seconds between detection cycles",
    )

    # =========================================================================
    # Simulation
    # =========================================================================

    price_volatility: float = Field(
        default=DEFAULT_PRICE_VOLATILITY,
        ge=0.0,
        le=0.5,
        description="Relative noise amplitude of simulated quotes",
    )
    rng_seed: int | None = Field(
        default=None,
        description="Seed for reproducible simulations",
    )

    # =========================================================================
    # Bounds
    # =========================================================================

    opportunity_ttl_s: float = Field(default=DEFAULT_OPPORTUNITY_TTL_SECONDS, gt=0.0)
    max_opportunities: int = Field(default=DEFAULT_MAX_OPPORTUNITIES, ge=1)
    max_trades: int = Field(default=DEFAULT_MAX_TRADES, ge=1)
    max_price_ticks: int = Field(default=DEFAULT_MAX_PRICE_TICKS, ge=1)
    max_notifications: int = Field(default=DEFAULT_MAX_NOTIFICATIONS, ge=1)
    stats_ttl_s: float = Field(default=DEFAULT_STATS_TTL_SECONDS, gt=0.0)
    max_tracked_fingerprints: int = Field(default=DEFAULT_MAX_TRACKED_FINGERPRINTS, ge=1)
    subscriber_queue_size: int = Field(default=SUBSCRIBER_QUEUE_SIZE, ge=1)

    # =========================================================================
    # Operation
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(default=None, description="Optional log file path")
    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for the event loop",
    )
    host: str = Field(default="0.0.0.0", description="Dashboard bind address")
    port: int = Field(default=8000, ge=1, le=65535, description="Dashboard port")


@lru_cache(maxsize=1)
def get_app_settings() -> AppSettings:
    """
    Get cached application settings.

    Clear cache with `get_app_settings.cache_clear()` if needed.
    """
    return AppSettings()
