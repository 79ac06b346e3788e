"""
Deterministic price oracle for testing.

Quotes come from a fixed table keyed by (exchange, pair), falling back
to a per-pair price shared by every exchange.
"""

from collections.abc import Mapping

from arbsim.core.errors import QuoteUnavailable


class StaticPriceOracle:
    """PriceOracle returning fixed quotes and recording every request."""

    def __init__(
        self,
        pair_prices: Mapping[str, float] | None = None,
        venue_prices: Mapping[tuple[str, str], float] | None = None,
    ) -> None:
        """
        Initialize mock oracle.

        Args:
            pair_prices: Pair -> price on every exchange.
            venue_prices: (exchange, pair) -> price overrides.
        """
        self._pair_prices = dict(pair_prices or {})
        self._venue_prices = dict(venue_prices or {})
        self.requests: list[tuple[str, str]] = []

    def quote(self, exchange: str, pair: str) -> float:
        self.requests.append((exchange, pair))
        if (exchange, pair) in self._venue_prices:
            return self._venue_prices[(exchange, pair)]
        if pair in self._pair_prices:
            return self._pair_prices[pair]
        raise QuoteUnavailable(exchange, pair)

    def pairs(self) -> list[str]:
        pairs = set(self._pair_prices) | {pair for _, pair in self._venue_prices}
        return sorted(pairs)

    def set_price(self, pair: str, price: float, exchange: str | None = None) -> None:
        """Set a quote for every exchange, or for one exchange only."""
        if exchange is None:
            self._pair_prices[pair] = price
        else:
            self._venue_prices[(exchange, pair)] = price
