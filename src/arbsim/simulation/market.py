"""
Simulated market quotes.

Every quote is an independent draw around a per-pair base price, so the
same pair on different exchanges disagrees by a few tenths of a percent
at default volatility. That disagreement is the only source of
opportunities in the simulator.
"""

import random
from collections.abc import Mapping

from arbsim.config.constants import DEFAULT_BASE_PRICES, DEFAULT_PRICE_VOLATILITY
from arbsim.core.errors import QuoteUnavailable, ValidationError


class NoisyPriceOracle:
    """
    PriceOracle drawing uniform noise around base prices.

    quote = base * (1 + (u - 0.5) * volatility), u ~ U[0, 1)

    Features:
    - Injectable base-price table
    - Injectable RNG for reproducible runs
    - Last quote cache per exchange/pair
    """

    def __init__(
        self,
        base_prices: Mapping[str, float] | None = None,
        volatility: float = DEFAULT_PRICE_VOLATILITY,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize oracle.

        Args:
            base_prices: Pair symbol -> base price.
            volatility: Full width of the relative noise band.
            rng: Random source.
        """
        prices = dict(DEFAULT_BASE_PRICES if base_prices is None else base_prices)
        if any(price <= 0 for price in prices.values()):
            raise ValidationError("Base prices must be positive")
        if not 0 <= volatility < 2:
            raise ValidationError("Volatility must be in [0, 2)")

        self._base_prices = prices
        self._volatility = volatility
        self._rng = rng or random.Random()
        self._last_quotes: dict[tuple[str, str], float] = {}
        self._quote_count = 0

    def quote(self, exchange: str, pair: str) -> float:
        """
        Draw a quote for `pair` on `exchange`.

        Raises:
            QuoteUnavailable: If the pair has no base price.
        """
        base = self._base_prices.get(pair)
        if base is None:
            raise QuoteUnavailable(exchange, pair)

        price = base * (1 + (self._rng.random() - 0.5) * self._volatility)
        self._last_quotes[(exchange, pair)] = price
        self._quote_count += 1
        return price

    def pairs(self) -> list[str]:
        """Get pair symbols this oracle can quote."""
        return sorted(self._base_prices)

    def set_base_price(self, pair: str, price: float) -> None:
        """Add or replace the base price of a pair."""
        if price <= 0:
            raise ValidationError("Base prices must be positive")
        self._base_prices[pair] = price

    def get_last_quote(self, exchange: str, pair: str) -> float | None:
        """Get the most recent quote drawn for an exchange/pair."""
        return self._last_quotes.get((exchange, pair))

    @property
    def volatility(self) -> float:
        return self._volatility

    @property
    def quote_count(self) -> int:
        return self._quote_count
