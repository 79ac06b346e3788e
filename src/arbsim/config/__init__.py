"""Configuration module for the arbitrage simulator."""

from arbsim.config.settings import (
    AppSettings,
    ExchangeFees,
    TradingSettings,
    get_app_settings,
)


__all__ = [
    "AppSettings",
    "ExchangeFees",
    "TradingSettings",
    "get_app_settings",
]
