"""
Opportunity detection.

Two generators share the profit model in ProfitCalculator:

- triangular: one exchange, a three-leg cycle from the catalog
- cross-exchange: one pair quoted on two or three distinct exchanges

Each draw picks a random candidate from the enabled markets, prices it
through the PriceOracle and keeps it only if its absolute profit clears
the generator's noise floor. The user's minimum-profit threshold is
applied later by the caller.
"""

import logging
import random
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from arbsim.config.constants import (
    CROSS_EXCHANGE_NOISE_FLOOR_PCT,
    MAX_CROSS_EXCHANGE_LEGS,
    MIN_CROSS_EXCHANGE_LEGS,
    TRIANGULAR_NOISE_FLOOR_PCT,
)
from arbsim.config.settings import TradingSettings
from arbsim.core.errors import QuoteUnavailable
from arbsim.core.types import (
    ArbitragePath,
    Opportunity,
    PathKind,
    PriceOracle,
    TriangleCycle,
)
from arbsim.strategy.calculator import ProfitCalculator
from arbsim.strategy.fingerprint import fingerprint
from arbsim.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)


@dataclass
class OpportunityStats:
    """Statistics for opportunity detection."""

    triangular_draws: int = 0
    cross_exchange_draws: int = 0
    below_noise_floor: int = 0
    opportunities_found: int = 0
    best_profit_pct: float = 0.0
    worst_profit_pct: float = 0.0
    found_by_kind: dict[str, int] = field(default_factory=dict)

    def record_opportunity(self, opportunity: Opportunity) -> None:
        """Record a detected opportunity."""
        profit_pct = opportunity.profit_percent
        self.opportunities_found += 1
        kind = opportunity.kind.value
        self.found_by_kind[kind] = self.found_by_kind.get(kind, 0) + 1

        if profit_pct > self.best_profit_pct:
            self.best_profit_pct = profit_pct
        if profit_pct < self.worst_profit_pct:
            self.worst_profit_pct = profit_pct


class OpportunityDetector:
    """
    Generates arbitrage opportunities from oracle quotes.

    Features:
    - Injected triangle-cycle catalog
    - Per-exchange fee records from the current settings
    - Configurable noise floors per generator
    - Injectable RNG for reproducible draws
    """

    def __init__(
        self,
        oracle: PriceOracle,
        cycles: Sequence[TriangleCycle],
        calculator: ProfitCalculator | None = None,
        rng: random.Random | None = None,
        triangular_noise_floor: float = TRIANGULAR_NOISE_FLOOR_PCT,
        cross_exchange_noise_floor: float = CROSS_EXCHANGE_NOISE_FLOOR_PCT,
    ) -> None:
        """
        Initialize detector.

        Args:
            oracle: Quote source.
            cycles: Triangular cycle catalog.
            calculator: Profit model (defaults to a 1000 principal).
            rng: Random source for candidate selection.
            triangular_noise_floor: Minimum |profit %| for triangular hits.
            cross_exchange_noise_floor: Minimum |profit %| for cross-exchange hits.
        """
        self._oracle = oracle
        self._cycles = list(cycles)
        self._calculator = calculator or ProfitCalculator()
        self._rng = rng or random.Random()
        self._triangular_floor = triangular_noise_floor
        self._cross_floor = cross_exchange_noise_floor
        self._stats = OpportunityStats()

    def detect(self, settings: TradingSettings) -> list[Opportunity]:
        """
        Run one draw of every generator enabled in `settings`.

        Returns:
            Opportunities found this cycle (zero to two).
        """
        found: list[Opportunity] = []

        if settings.enable_triangular_arbitrage:
            opportunity = self.detect_triangular(settings)
            if opportunity:
                found.append(opportunity)

        if settings.enable_cross_exchange_arbitrage:
            opportunity = self.detect_cross_exchange(settings)
            if opportunity:
                found.append(opportunity)

        return found

    def detect_triangular(self, settings: TradingSettings) -> Opportunity | None:
        """
        Draw one triangular candidate.

        Picks a random cycle whose three pairs are all enabled and a random
        enabled exchange, then compounds the settings' principal through
        the cycle at that exchange's trading fee.

        Returns:
            Opportunity if the candidate clears the noise floor.
        """
        self._stats.triangular_draws += 1

        enabled_pairs = settings.enabled_pair_set
        candidates = [cycle for cycle in self._cycles if cycle.is_enabled(enabled_pairs)]
        if not candidates or not settings.enabled_exchanges:
            return None

        cycle = self._rng.choice(candidates)
        exchange = self._rng.choice(settings.enabled_exchanges)
        try:
            prices = [self._oracle.quote(exchange, leg.pair) for leg in cycle.legs]
        except QuoteUnavailable as e:
            logger.debug(f"Skipping cycle {cycle.name}: {e}")
            return None

        _, profit_pct = self._calculator.triangular_profit(
            cycle,
            prices,
            settings.fees_for(exchange).trading_fee_pct,
            principal=settings.simulation_principal,
        )

        if abs(profit_pct) <= self._triangular_floor:
            self._stats.below_noise_floor += 1
            return None

        path = ArbitragePath(
            kind=PathKind.TRIANGULAR,
            exchanges=(exchange,) * len(cycle.legs),
            pairs=cycle.pairs,
            prices=tuple(prices),
        )
        return self._create(path, profit_pct)

    def detect_cross_exchange(self, settings: TradingSettings) -> Opportunity | None:
        """
        Draw one cross-exchange candidate.

        Picks a random enabled pair and two or three distinct enabled
        exchanges, quoting the pair on each.

        Returns:
            Opportunity if the candidate clears the noise floor.
        """
        self._stats.cross_exchange_draws += 1

        exchanges = settings.enabled_exchanges
        if len(exchanges) < MIN_CROSS_EXCHANGE_LEGS or not settings.enabled_pairs:
            return None

        pair = self._rng.choice(settings.enabled_pairs)
        hop_count = self._rng.randint(
            MIN_CROSS_EXCHANGE_LEGS, min(MAX_CROSS_EXCHANGE_LEGS, len(exchanges))
        )
        selected = self._rng.sample(exchanges, hop_count)
        try:
            prices = [self._oracle.quote(exchange, pair) for exchange in selected]
        except QuoteUnavailable as e:
            logger.debug(f"Skipping {pair}: {e}")
            return None

        fees = [settings.fees_for(exchange) for exchange in selected]
        transfer_fees = [f.transfer_fee_pct for f in fees]
        profit_pct = self._calculator.cross_exchange_profit(
            prices,
            transfer_fees,
            [f.trading_fee_pct for f in fees],
        )

        if abs(profit_pct) <= self._cross_floor:
            self._stats.below_noise_floor += 1
            return None

        path = ArbitragePath(
            kind=PathKind.CROSS_EXCHANGE,
            exchanges=tuple(selected),
            pairs=(pair,) * hop_count,
            prices=tuple(prices),
            transfer_fees=tuple(transfer_fees),
        )
        return self._create(path, profit_pct)

    def _create(self, path: ArbitragePath, profit_pct: float) -> Opportunity:
        opportunity = Opportunity(
            id=str(uuid.uuid4()),
            path=path,
            profit_percent=profit_pct,
            fingerprint=fingerprint(path),
            detected_at_ms=get_timestamp_ms(),
        )
        self._stats.record_opportunity(opportunity)

        logger.debug(
            f"Detected {path.kind.value} opportunity {opportunity.fingerprint[:8]} "
            f"on {','.join(path.exchanges)} {path.pairs[0]}: {profit_pct:+.4f}%"
        )
        return opportunity

    @property
    def stats(self) -> OpportunityStats:
        """Get detection statistics."""
        return self._stats

    @property
    def cycles(self) -> list[TriangleCycle]:
        """Get the triangular cycle catalog."""
        return list(self._cycles)

    def set_cycles(self, cycles: Sequence[TriangleCycle]) -> None:
        """Replace the triangular cycle catalog."""
        self._cycles = list(cycles)

    def reset_stats(self) -> None:
        """Reset detection statistics."""
        self._stats = OpportunityStats()
