"""Simulation module for mock market quotes and backtesting."""

from arbsim.simulation.backtest import Backtester, BacktestReport
from arbsim.simulation.market import NoisyPriceOracle


__all__ = [
    "BacktestReport",
    "Backtester",
    "NoisyPriceOracle",
]
