"""
Unit tests for AdmissionController.

Tests the ordered admission checks, the commit rule, the bounded stats
store and the per-fingerprint critical section.
"""

import asyncio
import copy

import pytest

from arbsim.config.settings import TradingSettings
from arbsim.core.types import ExecutionStats
from arbsim.execution.admission import (
    AdmissionController,
    AdmissionDecision,
    ExecutionStatsStore,
)


NOW = 1_700_000_000_000
FP = "a" * 32


class TestAdmissionDecision:
    def test_bool(self) -> None:
        assert AdmissionDecision(True)
        assert not AdmissionDecision(False, "nope")

    def test_reason(self) -> None:
        decision = AdmissionDecision(False, "Cooldown period active (3s remaining)")

        assert decision.allowed is False
        assert "3s" in decision.reason


class TestEvaluate:
    """Tests for AdmissionController.evaluate."""

    def test_feature_disabled(self) -> None:
        settings = TradingSettings(enable_repeat_autotrade=False)

        decision = AdmissionController.evaluate(None, settings, 100.0, NOW)

        assert not decision
        assert decision.reason == "Repeat auto-trade feature disabled"

    def test_first_execution_allowed(self, trading_settings: TradingSettings) -> None:
        decision = AdmissionController.evaluate(None, trading_settings, 1000.0, NOW)

        assert decision
        assert decision.reason == ""

    def test_execution_cap(self) -> None:
        """Three executions already recorded against a cap of three."""
        settings = TradingSettings(max_executions_per_opportunity=3)
        stats = ExecutionStats(execution_count=3)

        decision = AdmissionController.evaluate(stats, settings, 100.0, NOW)

        assert not decision
        assert "3" in decision.reason
        assert decision.reason == "Max executions per opportunity reached (3)"

    def test_exposure_cap(self, trading_settings: TradingSettings) -> None:
        stats = ExecutionStats(execution_count=1, cumulative_exposure=4500.0)

        decision = AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)

        assert not decision
        assert decision.reason == "Max exposure per opportunity would be exceeded (5000)"

    def test_exposure_exactly_at_cap_allowed(self, trading_settings: TradingSettings) -> None:
        stats = ExecutionStats(execution_count=1, cumulative_exposure=4000.0)

        decision = AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)

        assert decision

    def test_cooldown(self) -> None:
        """Executed five seconds ago with a one-minute cooldown."""
        settings = TradingSettings(min_cooldown_ms=60_000)
        stats = ExecutionStats(execution_count=1, last_executed_at_ms=NOW - 5_000)

        decision = AdmissionController.evaluate(stats, settings, 100.0, NOW)

        assert not decision
        assert decision.reason == "Cooldown period active (55s remaining)"

    def test_cooldown_remaining_rounds_up(self) -> None:
        settings = TradingSettings(min_cooldown_ms=60_000)
        stats = ExecutionStats(execution_count=1, last_executed_at_ms=NOW - 5_500)

        decision = AdmissionController.evaluate(stats, settings, 100.0, NOW)

        assert "(55s remaining)" in decision.reason

    def test_cooldown_elapsed(self) -> None:
        settings = TradingSettings(min_cooldown_ms=60_000)
        stats = ExecutionStats(execution_count=1, last_executed_at_ms=NOW - 60_000)

        assert AdmissionController.evaluate(stats, settings, 100.0, NOW)

    def test_sequential_cap_within_window(self, trading_settings: TradingSettings) -> None:
        stats = ExecutionStats(
            execution_count=2,
            cumulative_exposure=2000.0,
            last_executed_at_ms=NOW - 61_000,
            sequential_executions=2,
            last_sequential_reset_at_ms=NOW - 200_000,
        )

        decision = AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)

        assert not decision
        assert decision.reason == "Max sequential executions reached (2)"

    def test_sequential_count_expires_after_window(
        self, trading_settings: TradingSettings
    ) -> None:
        """Window is ten cooldowns; older counters no longer apply."""
        stats = ExecutionStats(
            execution_count=2,
            cumulative_exposure=2000.0,
            last_executed_at_ms=NOW - 61_000,
            sequential_executions=2,
            last_sequential_reset_at_ms=NOW - 600_001,
        )

        assert AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)

    def test_first_failing_check_wins(self) -> None:
        """Execution cap is reported before cooldown."""
        settings = TradingSettings(max_executions_per_opportunity=1, min_cooldown_ms=60_000)
        stats = ExecutionStats(execution_count=1, last_executed_at_ms=NOW - 1_000)

        decision = AdmissionController.evaluate(stats, settings, 100.0, NOW)

        assert decision.reason.startswith("Max executions")

    def test_evaluate_is_pure(self, trading_settings: TradingSettings) -> None:
        stats = ExecutionStats(
            execution_count=1,
            cumulative_exposure=1000.0,
            last_executed_at_ms=NOW - 10_000,
            sequential_executions=1,
            last_sequential_reset_at_ms=NOW - 10_000,
        )
        snapshot = copy.copy(stats)

        first = AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)
        second = AdmissionController.evaluate(stats, trading_settings, 1000.0, NOW)

        assert (first.allowed, first.reason) == (second.allowed, second.reason)
        assert stats == snapshot


class TestCommit:
    """Tests for the commit rule."""

    @pytest.fixture
    def controller(self) -> AdmissionController:
        return AdmissionController(clock=lambda: NOW)

    def test_first_commit(self, controller: AdmissionController) -> None:
        stats = controller.commit(FP, 250.0, now_ms=NOW)

        assert stats.execution_count == 1
        assert stats.cumulative_exposure == 250.0
        assert stats.last_executed_at_ms == NOW
        assert stats.sequential_executions == 1
        assert stats.last_sequential_reset_at_ms == NOW

    def test_commit_within_window_increments(self, controller: AdmissionController) -> None:
        controller.commit(FP, 250.0, now_ms=NOW)
        stats = controller.commit(FP, 250.0, now_ms=NOW + 61_000)

        assert stats.execution_count == 2
        assert stats.cumulative_exposure == 500.0
        assert stats.sequential_executions == 2
        assert stats.last_sequential_reset_at_ms == NOW

    def test_commit_after_window_resets(self, controller: AdmissionController) -> None:
        controller.commit(FP, 250.0, now_ms=NOW)
        later = NOW + 600_001
        stats = controller.commit(FP, 250.0, now_ms=later)

        assert stats.execution_count == 2
        assert stats.sequential_executions == 1
        assert stats.last_sequential_reset_at_ms == later

    def test_check_uses_committed_stats(self, controller: AdmissionController) -> None:
        settings = TradingSettings()
        controller.commit(FP, 1000.0, settings, now_ms=NOW)

        decision = controller.check(FP, settings, 1000.0, now_ms=NOW + 1_000)

        assert not decision
        assert decision.reason == "Cooldown period active (59s remaining)"

    def test_stats_for(self, controller: AdmissionController) -> None:
        assert controller.stats_for(FP) is None

        controller.commit(FP, 100.0)

        stats = controller.stats_for(FP)
        assert stats is not None
        assert stats.execution_count == 1


class TestExecutionStatsStore:
    """Tests for the bounded stats store."""

    def test_ttl_expiry(self) -> None:
        store = ExecutionStatsStore(ttl_s=1.0)
        store.put(FP, ExecutionStats(execution_count=1), NOW)

        assert store.get(FP, NOW + 1_000) is not None
        assert store.get(FP, NOW + 1_001) is None
        assert FP not in store
        assert store.evicted_count == 1

    def test_lru_eviction(self) -> None:
        store = ExecutionStatsStore(max_size=2)
        store.put("a", ExecutionStats(), NOW)
        store.put("b", ExecutionStats(), NOW)
        store.put("a", ExecutionStats(), NOW + 1)
        store.put("c", ExecutionStats(), NOW + 2)

        assert len(store) == 2
        assert "b" not in store
        assert "a" in store
        assert "c" in store

    def test_reset_sequential(self) -> None:
        store = ExecutionStatsStore()
        store.put(FP, ExecutionStats(sequential_executions=2), NOW)

        assert store.reset_sequential(FP, NOW + 5)
        stats = store.get(FP, NOW + 5)
        assert stats is not None
        assert stats.sequential_executions == 0
        assert stats.last_sequential_reset_at_ms == NOW + 5
        assert not store.reset_sequential("unknown", NOW)

    def test_clear(self) -> None:
        store = ExecutionStatsStore()
        store.put(FP, ExecutionStats(), NOW)

        store.clear()

        assert len(store) == 0


class TestRunAdmitted:
    """Tests for the per-fingerprint critical section."""

    @pytest.mark.asyncio
    async def test_runs_and_commits(self) -> None:
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings()
        calls: list[str] = []

        async def action() -> str:
            calls.append("run")
            return "trade"

        decision, result = await controller.run_admitted(FP, settings, 500.0, action)

        assert decision
        assert result == "trade"
        assert calls == ["run"]
        stats = controller.stats_for(FP)
        assert stats is not None
        assert stats.cumulative_exposure == 500.0

    @pytest.mark.asyncio
    async def test_denied_skips_action(self) -> None:
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings()
        calls: list[str] = []

        async def action() -> str:
            calls.append("run")
            return "trade"

        await controller.run_admitted(FP, settings, 500.0, action)
        decision, result = await controller.run_admitted(FP, settings, 500.0, action)

        assert not decision
        assert result is None
        assert calls == ["run"]
        assert controller.allowed_count == 1
        assert controller.denied_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_same_fingerprint_serialized(self) -> None:
        """Only one of two simultaneous detections passes a one-shot cap."""
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings(max_executions_per_opportunity=1)
        calls: list[int] = []

        async def action() -> int:
            calls.append(len(calls))
            await asyncio.sleep(0)
            return len(calls)

        results = await asyncio.gather(
            controller.run_admitted(FP, settings, 100.0, action),
            controller.run_admitted(FP, settings, 100.0, action),
        )

        allowed = [decision for decision, _ in results if decision]
        assert len(allowed) == 1
        assert len(calls) == 1
        assert controller.active_lock_count == 0

    @pytest.mark.asyncio
    async def test_different_fingerprints_independent(self) -> None:
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings(max_executions_per_opportunity=1)

        async def action() -> bool:
            await asyncio.sleep(0)
            return True

        results = await asyncio.gather(
            controller.run_admitted("a" * 32, settings, 100.0, action),
            controller.run_admitted("b" * 32, settings, 100.0, action),
        )

        assert all(decision for decision, _ in results)

    @pytest.mark.asyncio
    async def test_failing_action_not_committed(self) -> None:
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings()

        async def action() -> None:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await controller.run_admitted(FP, settings, 100.0, action)

        assert controller.stats_for(FP) is None
        assert controller.active_lock_count == 0

    @pytest.mark.asyncio
    async def test_failure_after_effect_still_committed(self) -> None:
        controller = AdmissionController(clock=lambda: NOW)
        settings = TradingSettings()
        stored: list[str] = []

        async def action() -> None:
            stored.append("trade")
            raise RuntimeError("notification sink down")

        with pytest.raises(RuntimeError):
            await controller.run_admitted(
                FP, settings, 100.0, action, took_effect=lambda: bool(stored)
            )

        stats = controller.stats_for(FP)
        assert stats is not None
        assert stats.execution_count == 1
        assert stats.cumulative_exposure == 100.0
