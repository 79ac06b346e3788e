"""
Arbitrage profit model.

Shared by both detectors: triangular cycles compound a principal through
three fee-charged legs on one exchange; cross-exchange spreads compare
the last and first quote and subtract every transfer and trading fee.
All fees are percentages (0.1 = 0.1%).
"""

import logging
from collections.abc import Sequence

from arbsim.core.types import OrderSide, TriangleCycle


logger = logging.getLogger(__name__)


class ProfitCalculator:
    """
    Computes signed profit percentages for candidate paths.

    Stateless apart from the default principal; given fixed quotes every
    result is deterministic.
    """

    __slots__ = ("_principal",)

    def __init__(self, principal: float = 1000.0) -> None:
        """
        Initialize calculator.

        Args:
            principal: Starting amount for triangular compounding.
        """
        if principal <= 0:
            raise ValueError("principal must be positive")
        self._principal = principal

    def compound_cycle(
        self,
        cycle: TriangleCycle,
        prices: Sequence[float],
        trading_fee_pct: float,
        principal: float | None = None,
    ) -> float:
        """
        Walk the principal through every leg of a cycle.

        A BUY leg spends quote to get base (divide by price); a SELL leg
        spends base to get quote (multiply by price). The trading fee is
        charged on the proceeds of every hop.

        Returns:
            Final amount in the starting asset.
        """
        fee_multiplier = 1.0 - trading_fee_pct / 100.0
        amount = self._principal if principal is None else principal

        for leg, price in zip(cycle.legs, prices, strict=True):
            if leg.side == OrderSide.BUY:
                amount /= price
            else:
                amount *= price
            amount *= fee_multiplier

        return amount

    def triangular_profit(
        self,
        cycle: TriangleCycle,
        prices: Sequence[float],
        trading_fee_pct: float,
        principal: float | None = None,
    ) -> tuple[float, float]:
        """
        Round-trip outcome of a triangular cycle.

        Returns:
            (final_amount, profit_percent)
        """
        start = self._principal if principal is None else principal
        final_amount = self.compound_cycle(cycle, prices, trading_fee_pct, start)
        profit_percent = (final_amount - start) / start * 100.0
        return final_amount, profit_percent

    @staticmethod
    def cross_exchange_profit(
        prices: Sequence[float],
        transfer_fees_pct: Sequence[float],
        trading_fees_pct: Sequence[float],
    ) -> float:
        """
        Signed profit percentage of buying at the first quote and selling
        at the last, net of every hop's transfer and trading fee.
        """
        first, last = prices[0], prices[-1]
        gross = (last - first) / first * 100.0
        return gross - sum(transfer_fees_pct) - sum(trading_fees_pct)

    @property
    def principal(self) -> float:
        """Default principal for triangular compounding."""
        return self._principal
