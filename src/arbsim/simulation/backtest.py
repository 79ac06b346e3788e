"""
Backtesting over simulated detection draws.

Replays a fixed number of detection cycles (five per simulated day)
against the live detector and records every candidate above the
requested profit as a "backtested" trade.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from arbsim.config.constants import (
    BACKTEST_CAPITAL_FRACTION,
    BACKTEST_DRAWS_PER_DAY,
    BACKTEST_MAX_TRADE_AMOUNT,
)
from arbsim.config.settings import TradingSettings
from arbsim.core.errors import ValidationError
from arbsim.core.types import Trade
from arbsim.execution.executor import ExecutionEngine
from arbsim.strategy.opportunity import OpportunityDetector
from arbsim.telemetry.metrics import build_analytics


logger = logging.getLogger(__name__)


@dataclass
class BacktestReport:
    """Outcome of a backtest run."""

    initial_capital: float
    days: float
    min_profit: float
    draws: int
    trade_amount: float
    trades: list[Trade] = field(default_factory=list)

    @property
    def total_profit(self) -> float:
        return sum(trade.profit_amount for trade in self.trades)

    def to_dict(self) -> dict[str, Any]:
        return {
            "initial_capital": self.initial_capital,
            "days": self.days,
            "min_profit": self.min_profit,
            "draws": self.draws,
            "trade_amount": self.trade_amount,
            "trades": [trade.to_dict() for trade in self.trades],
            "analytics": build_analytics(list(reversed(self.trades))),
        }


class Backtester:
    """Runs backtests using the detector and the execution engine's simulate path."""

    def __init__(self, detector: OpportunityDetector, executor: ExecutionEngine) -> None:
        self._detector = detector
        self._executor = executor

    async def run(
        self,
        initial_capital: float,
        days: float,
        min_profit: float,
        settings: TradingSettings | None = None,
    ) -> BacktestReport:
        """
        Run a backtest.

        Args:
            initial_capital: Capital the trade size is derived from.
            days: Simulated days (five draws per day, truncated).
            min_profit: Minimum |profit %| for a candidate to be traded.
            settings: Markets and fees to draw from.

        Returns:
            BacktestReport with the recorded trades.

        Raises:
            ValidationError: If any argument is out of range.
        """
        for name, value in (
            ("initial_capital", initial_capital),
            ("days", days),
            ("min_profit", min_profit),
        ):
            if not math.isfinite(value) or value < 0:
                raise ValidationError(f"{name} must be a non-negative number")
        if initial_capital == 0:
            raise ValidationError("initial_capital must be positive")

        settings = settings or TradingSettings()
        draws = int(days * BACKTEST_DRAWS_PER_DAY)
        trade_amount = min(initial_capital * BACKTEST_CAPITAL_FRACTION, BACKTEST_MAX_TRADE_AMOUNT)
        report = BacktestReport(
            initial_capital=initial_capital,
            days=days,
            min_profit=min_profit,
            draws=draws,
            trade_amount=trade_amount,
        )

        for _ in range(draws):
            for opportunity in self._detector.detect(settings):
                if abs(opportunity.profit_percent) < min_profit:
                    continue
                trade = await self._executor.simulate(
                    opportunity.path,
                    opportunity.profit_percent,
                    trade_amount,
                    backtest=True,
                )
                report.trades.append(trade)

        logger.info(
            f"Backtest over {days} days: {draws} draws, {len(report.trades)} trades, "
            f"profit {report.total_profit:+.2f}"
        )
        return report
