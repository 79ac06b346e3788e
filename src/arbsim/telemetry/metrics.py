"""
Metrics collection and trade analytics.

Counters and rolling latency windows for the simulator loops, plus the
analytics summary the dashboard shows over stored trades.
"""

from collections import Counter, defaultdict, deque
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from functools import partial
from typing import Any

from arbsim.config.constants import LATENCY_WINDOW_SIZE, RECENT_TRADES_LIMIT
from arbsim.core.types import Trade
from arbsim.utils.time import get_timestamp_ms


@dataclass(frozen=True, slots=True)
class LatencyStats:
    """Summary of one latency window, in microseconds."""

    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p95_us: int = 0
    p99_us: int = 0
    count: int = 0

    @classmethod
    def from_samples(cls, samples: Sequence[int]) -> "LatencyStats":
        if not samples:
            return cls()
        ordered = sorted(samples)
        n = len(ordered)
        return cls(
            min_us=ordered[0],
            max_us=ordered[-1],
            avg_us=sum(ordered) / n,
            p50_us=ordered[n // 2],
            p95_us=ordered[min(n - 1, int(n * 0.95))],
            p99_us=ordered[min(n - 1, int(n * 0.99))],
            count=n,
        )


class MetricsCollector:
    """
    In-process counters and latency windows.

    Counter names are dotted, e.g. ``opportunities.triangular``,
    ``admissions.denied``, ``trades.failed``, ``broadcast.dropped``.
    """

    def __init__(self, latency_window_size: int = LATENCY_WINDOW_SIZE) -> None:
        self._latencies: defaultdict[str, deque[int]] = defaultdict(
            partial(deque, maxlen=latency_window_size)
        )
        self._counters: Counter[str] = Counter()
        self._started_at_ms = get_timestamp_ms()

    # =========================================================================
    # Counters
    # =========================================================================

    def increment_counter(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def get_counter(self, name: str) -> int:
        return self._counters[name]

    def record_opportunity(self, kind: str) -> None:
        self._counters.update(("opportunities", f"opportunities.{kind}"))

    def record_admission(self, allowed: bool) -> None:
        self._counters["admissions.allowed" if allowed else "admissions.denied"] += 1

    def record_trade(self, status: str) -> None:
        self._counters.update(("trades", f"trades.{status}"))

    # =========================================================================
    # Latencies
    # =========================================================================

    def record_latency(self, name: str, latency_us: int) -> None:
        """Add a sample to the rolling window for `name`."""
        self._latencies[name].append(latency_us)

    def get_latency_stats(self, name: str) -> LatencyStats:
        return LatencyStats.from_samples(self._latencies.get(name, ()))

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        return {name: LatencyStats.from_samples(s) for name, s in self._latencies.items()}

    # =========================================================================
    # Export
    # =========================================================================

    @property
    def uptime_seconds(self) -> float:
        return (get_timestamp_ms() - self._started_at_ms) / 1000

    def to_dict(self) -> dict[str, object]:
        """Snapshot of counters and latency summaries for the status view."""
        return {
            "uptime_seconds": self.uptime_seconds,
            "counters": dict(self._counters),
            "latencies": {
                name: asdict(stats) for name, stats in self.get_all_latency_stats().items()
            },
        }

    def reset(self) -> None:
        self._latencies.clear()
        self._counters.clear()
        self._started_at_ms = get_timestamp_ms()


def build_analytics(
    trades: Sequence[Trade],
    recent_limit: int = RECENT_TRADES_LIMIT,
) -> dict[str, Any]:
    """
    Summarize trades for the analytics view.

    A trade counts as a win when its profit amount is positive.

    Args:
        trades: Trades, newest first.
        recent_limit: Number of trades included in `recent_trades`.

    Returns:
        Dict with total_trades, win_rate (percent), total_profit,
        average_profit and recent_trades.
    """
    total_trades = len(trades)
    profitable = sum(1 for trade in trades if trade.is_profitable)
    total_profit = sum(trade.profit_amount for trade in trades)

    return {
        "total_trades": total_trades,
        "win_rate": profitable / total_trades * 100 if total_trades else 0.0,
        "total_profit": total_profit,
        "average_profit": total_profit / total_trades if total_trades else 0.0,
        "recent_trades": [trade.to_dict() for trade in trades[:recent_limit]],
    }
