"""
Unit tests for ProfitCalculator.

Tests triangular compounding, fee handling and cross-exchange spreads.
"""

import pytest

from arbsim.core.types import OrderSide, TriangleCycle, TriangleLeg
from arbsim.strategy.calculator import ProfitCalculator


class TestProfitCalculator:
    """Tests for ProfitCalculator."""

    def test_initialization(self) -> None:
        """Test calculator initialization."""
        calc = ProfitCalculator(principal=500.0)

        assert calc.principal == 500.0

    def test_rejects_non_positive_principal(self) -> None:
        with pytest.raises(ValueError):
            ProfitCalculator(principal=0.0)

    def test_triangular_arithmetic(self, usdt_btc_eth_cycle: TriangleCycle) -> None:
        """BUY legs divide, SELL legs multiply, fee charged on every hop."""
        calc = ProfitCalculator()
        prices = [45000.0, 0.0555, 2500.0]

        final, profit_pct = calc.triangular_profit(usdt_btc_eth_cycle, prices, 0.1)

        expected = 1000 / 45000 * 0.999 / 0.0555 * 0.999 * 2500 * 0.999
        assert final == pytest.approx(expected, rel=1e-12)
        assert profit_pct == pytest.approx((expected - 1000) / 1000 * 100, abs=1e-6)

    def test_zero_fee_fair_prices_break_even(self, usdt_btc_eth_cycle: TriangleCycle) -> None:
        """Consistent cross rates with no fee return the principal."""
        calc = ProfitCalculator()

        final, profit_pct = calc.triangular_profit(
            usdt_btc_eth_cycle, [40000.0, 0.05, 2000.0], 0.0
        )

        assert final == pytest.approx(1000.0)
        assert profit_pct == pytest.approx(0.0, abs=1e-9)

    def test_principal_override(self, usdt_btc_eth_cycle: TriangleCycle) -> None:
        """Profit percent does not depend on the principal."""
        calc = ProfitCalculator()
        prices = [45000.0, 0.0554, 2500.0]

        _, pct_default = calc.triangular_profit(usdt_btc_eth_cycle, prices, 0.1)
        final, pct_large = calc.triangular_profit(
            usdt_btc_eth_cycle, prices, 0.1, principal=10_000.0
        )

        assert pct_large == pytest.approx(pct_default)
        assert final == pytest.approx(10_000.0 * (1 + pct_large / 100))

    def test_sell_first_cycle(self) -> None:
        """A cycle may start with a SELL leg."""
        cycle = TriangleCycle(
            name="BTC-USDT-ETH",
            legs=(
                TriangleLeg("BTC/USDT", OrderSide.SELL),
                TriangleLeg("ETH/USDT", OrderSide.BUY),
                TriangleLeg("ETH/BTC", OrderSide.SELL),
            ),
        )
        calc = ProfitCalculator(principal=1.0)

        final = calc.compound_cycle(cycle, [45000.0, 2500.0, 0.0556], 0.0)

        assert final == pytest.approx(1.0 * 45000.0 / 2500.0 * 0.0556)

    def test_cross_exchange_profit(self) -> None:
        """Gross spread minus every transfer and trading fee."""
        profit = ProfitCalculator.cross_exchange_profit(
            [45000.0, 45450.0],
            [0.1, 0.12],
            [0.1, 0.1],
        )

        assert profit == pytest.approx(1.0 - 0.22 - 0.2)

    def test_cross_exchange_uses_first_and_last_quote(self) -> None:
        """Middle hops only contribute fees."""
        profit = ProfitCalculator.cross_exchange_profit(
            [100.0, 500.0, 99.0],
            [0.0, 0.0, 0.0],
            [0.0, 0.0, 0.0],
        )

        assert profit == pytest.approx(-1.0)
