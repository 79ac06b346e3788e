"""
Unit tests for MetricsCollector and trade analytics.
"""

import pytest

from arbsim.core.types import ArbitragePath, Trade, TradeStatus
from arbsim.telemetry.metrics import MetricsCollector, build_analytics


def _trade(path: ArbitragePath, profit: float, status: TradeStatus, n: int) -> Trade:
    return Trade(
        id=f"t{n}",
        path=path,
        initial_amount=1000.0,
        profit_percent=profit / 10,
        profit_amount=profit,
        status=status,
        timestamp_ms=n,
    )


class TestMetricsCollector:
    """Tests for MetricsCollector."""

    def test_counters(self) -> None:
        metrics = MetricsCollector()

        metrics.record_opportunity("triangular")
        metrics.record_opportunity("cross-exchange")
        metrics.record_admission(True)
        metrics.record_admission(False)
        metrics.record_trade("executed")

        assert metrics.get_counter("opportunities") == 2
        assert metrics.get_counter("opportunities.triangular") == 1
        assert metrics.get_counter("admissions.allowed") == 1
        assert metrics.get_counter("admissions.denied") == 1
        assert metrics.get_counter("trades.executed") == 1
        assert metrics.get_counter("missing") == 0

    def test_latency_stats(self) -> None:
        metrics = MetricsCollector()
        for value in (10, 20, 30, 40):
            metrics.record_latency("detect_cycle", value)

        stats = metrics.get_latency_stats("detect_cycle")

        assert stats.min_us == 10
        assert stats.max_us == 40
        assert stats.avg_us == 25.0
        assert stats.count == 4

    def test_latency_window(self) -> None:
        metrics = MetricsCollector(latency_window_size=2)
        for value in (1, 2, 3):
            metrics.record_latency("x", value)

        assert metrics.get_latency_stats("x").min_us == 2

    def test_to_dict_and_reset(self) -> None:
        metrics = MetricsCollector()
        metrics.increment_counter("price_ticks", 5)
        metrics.record_latency("detect_cycle", 7)

        data = metrics.to_dict()
        assert data["counters"] == {"price_ticks": 5}
        assert "detect_cycle" in data["latencies"]

        metrics.reset()
        assert metrics.get_counter("price_ticks") == 0
        assert metrics.get_all_latency_stats() == {}


class TestBuildAnalytics:
    """Tests for build_analytics."""

    def test_empty(self) -> None:
        analytics = build_analytics([])

        assert analytics == {
            "total_trades": 0,
            "win_rate": 0.0,
            "total_profit": 0.0,
            "average_profit": 0.0,
            "recent_trades": [],
        }

    def test_summary(self, cross_path: ArbitragePath) -> None:
        trades = [
            _trade(cross_path, 6.0, TradeStatus.EXECUTED, 4),
            _trade(cross_path, 0.0, TradeStatus.FAILED, 3),
            _trade(cross_path, -2.0, TradeStatus.SIMULATED, 2),
            _trade(cross_path, 4.0, TradeStatus.BACKTESTED, 1),
        ]

        analytics = build_analytics(trades, recent_limit=2)

        assert analytics["total_trades"] == 4
        assert analytics["win_rate"] == pytest.approx(50.0)
        assert analytics["total_profit"] == pytest.approx(8.0)
        assert analytics["average_profit"] == pytest.approx(2.0)
        assert [t["id"] for t in analytics["recent_trades"]] == ["t4", "t3"]
