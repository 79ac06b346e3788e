"""
Main simulator engine orchestrator.

Coordinates the price oracle, detector, admission controller and
execution engine, and drives the two periodic timers (price refresh and
opportunity detection).
"""

import asyncio
import logging
import math
import random
import signal
from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, InstanceOf, field_validator

from arbsim.config.settings import AppSettings, TradingSettings, get_app_settings
from arbsim.core.errors import CollaboratorUnavailable, QuoteUnavailable, ValidationError
from arbsim.core.event_bus import Event, EventBus, EventType
from arbsim.core.types import (
    ArbitragePath,
    Opportunity,
    PriceOracle,
    PriceTick,
    Trade,
    TriangleCycle,
)
from arbsim.execution.admission import (
    AdmissionController,
    AdmissionDecision,
    ExecutionStatsStore,
)
from arbsim.execution.executor import ExecutionEngine, ExecutorConfig
from arbsim.simulation.backtest import Backtester, BacktestReport
from arbsim.simulation.market import NoisyPriceOracle
from arbsim.storage.memory import InMemoryRecordStore
from arbsim.strategy.graph import CycleDiscovery
from arbsim.strategy.opportunity import OpportunityDetector
from arbsim.telemetry.metrics import MetricsCollector
from arbsim.telemetry.notifications import Notifier
from arbsim.utils.time import LatencyTimer, get_timestamp_ms


logger = logging.getLogger(__name__)


class ManualExecutionRequest(BaseModel):
    """User-initiated trade of a path; bypasses admission control."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    opportunity_id: str | None = None
    path: InstanceOf[ArbitragePath]
    profit_percent: float
    auto_execute: bool = False

    @field_validator("path", mode="before")
    @classmethod
    def parse_path(cls, v: Any) -> ArbitragePath:
        if isinstance(v, ArbitragePath):
            return v
        if not isinstance(v, dict):
            raise ValueError("path must be an object")
        return ArbitragePath.from_dict(v)

    @field_validator("profit_percent")
    @classmethod
    def validate_profit(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("profit_percent must be finite")
        return v

    @classmethod
    def parse(cls, payload: object) -> "ManualExecutionRequest":
        """
        Validate an untrusted payload.

        Raises:
            ValidationError: If the payload is not a valid request.
        """
        try:
            return cls.model_validate(payload)
        except pydantic.ValidationError as e:
            raise ValidationError(f"Invalid execution request: {e}") from e


class ArbitrageEngine:
    """
    Main simulator orchestrator.

    Manages:
    - Periodic price refresh into the record store
    - Periodic opportunity detection and automatic execution
    - Manual execution and backtests
    - Metrics for every stage
    """

    def __init__(
        self,
        app_settings: AppSettings | None = None,
        store: InMemoryRecordStore | None = None,
        oracle: PriceOracle | None = None,
        cycles: Sequence[TriangleCycle] | None = None,
        rng: random.Random | None = None,
        execution_rng: random.Random | None = None,
        executor_config: ExecutorConfig | None = None,
        clock: Callable[[], int] = get_timestamp_ms,
    ) -> None:
        """
        Initialize the engine.

        Args:
            app_settings: Process settings (intervals, bounds, seed).
            store: Record store and settings provider.
            oracle: Quote source (defaults to NoisyPriceOracle).
            cycles: Triangular cycle catalog (default: discovered from the
                oracle's pairs).
            rng: Random source for detection.
            execution_rng: Random source for hop failures.
            executor_config: Executor configuration.
            clock: Millisecond clock for admission control.
        """
        self._app_settings = app_settings or get_app_settings()
        seed = self._app_settings.rng_seed

        self._store = store or InMemoryRecordStore(
            opportunity_ttl_s=self._app_settings.opportunity_ttl_s,
            max_opportunities=self._app_settings.max_opportunities,
            max_trades=self._app_settings.max_trades,
            max_price_ticks=self._app_settings.max_price_ticks,
            max_notifications=self._app_settings.max_notifications,
        )
        self._oracle = oracle or NoisyPriceOracle(
            volatility=self._app_settings.price_volatility,
            rng=random.Random(seed),
        )
        if cycles is None:
            cycles = CycleDiscovery(self._oracle.pairs()).find_cycles()

        # Infrastructure
        self._event_bus = EventBus()
        self._metrics = MetricsCollector()
        self._notifier = Notifier(self._store, self._event_bus)

        # Core components
        self._detector = OpportunityDetector(
            self._oracle,
            cycles,
            rng=rng or random.Random(seed),
        )
        self._admission = AdmissionController(
            ExecutionStatsStore(
                ttl_s=self._app_settings.stats_ttl_s,
                max_size=self._app_settings.max_tracked_fingerprints,
            ),
            clock=clock,
        )
        self._executor = ExecutionEngine(
            self._store,
            self._event_bus,
            self._notifier,
            config=executor_config,
            rng=execution_rng or random.Random(None if seed is None else seed + 1),
        )
        self._backtester = Backtester(self._detector, self._executor)

        self._event_bus.subscribe_sync(EventType.TRADE, self._on_trade)

        # State
        self._running = False
        self._shutdown_event = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []
        self._started_at_ms: int | None = None

    # =========================================================================
    # Ticks
    # =========================================================================

    async def refresh_prices(self) -> list[PriceTick]:
        """
        Quote every enabled exchange/pair and record the ticks.

        Pairs the oracle cannot price are skipped.

        Returns:
            Ticks recorded this refresh.
        """
        settings = await self._store.get_settings()
        ticks: list[PriceTick] = []

        for exchange in settings.enabled_exchanges:
            for pair in settings.enabled_pairs:
                try:
                    price = self._oracle.quote(exchange, pair)
                except QuoteUnavailable as e:
                    logger.debug(str(e))
                    continue

                tick = PriceTick(
                    exchange=exchange,
                    symbol=pair,
                    price=price,
                    timestamp_ms=get_timestamp_ms(),
                )
                await self._store.add_price(tick)
                await self._event_bus.publish(EventType.PRICE, tick, source="engine")
                ticks.append(tick)

        self._metrics.increment_counter("price_ticks", len(ticks))
        return ticks

    async def detect_once(self) -> list[Opportunity]:
        """
        Run one detection cycle.

        Settings are re-read every cycle. Every hit is stored and
        published; when automatic trading is on, hits at or above the
        minimum profit go through admission control.

        Returns:
            Opportunities detected this cycle.
        """
        settings = await self._store.get_settings()

        with LatencyTimer() as timer:
            opportunities = self._detector.detect(settings)
        self._metrics.record_latency("detect_cycle", timer.latency_us)

        for opportunity in opportunities:
            await self._store.add_opportunity(opportunity)
            await self._event_bus.publish(EventType.OPPORTUNITY, opportunity, source="engine")
            self._metrics.record_opportunity(opportunity.kind.value)

            if (
                settings.auto_trade_enabled
                and opportunity.profit_percent >= settings.min_profit_percent
            ):
                await self.auto_execute(opportunity, settings)

        return opportunities

    async def auto_execute(
        self,
        opportunity: Opportunity,
        settings: TradingSettings,
    ) -> tuple[AdmissionDecision, Trade | None]:
        """
        Execute an opportunity if admission control allows it.

        Returns:
            (decision, trade or None if denied)
        """
        amount = settings.trade_amount_for(opportunity.path)
        stored: list[Trade] = []

        def action() -> Awaitable[Trade]:
            return self._executor.execute(
                opportunity.path,
                opportunity.profit_percent,
                amount,
                opportunity_id=opportunity.id,
                notifications_enabled=settings.notifications_enabled,
                on_persisted=stored.append,
            )

        with LatencyTimer() as timer:
            decision, trade = await self._admission.run_admitted(
                opportunity.fingerprint,
                settings,
                amount,
                action,
                took_effect=lambda: bool(stored),
            )
        self._metrics.record_admission(bool(decision))
        if trade is not None:
            self._metrics.record_latency("execute", timer.latency_us)

        return decision, trade

    async def execute_manual(self, request: ManualExecutionRequest) -> Trade:
        """
        Execute or simulate a user-selected path.

        Admission control is bypassed; the principal comes from the
        current settings.
        """
        settings = await self._store.get_settings()
        principal = settings.simulation_principal

        if request.auto_execute:
            return await self._executor.execute(
                request.path,
                request.profit_percent,
                principal,
                opportunity_id=request.opportunity_id,
                notifications_enabled=settings.notifications_enabled,
            )

        return await self._executor.simulate(
            request.path,
            request.profit_percent,
            principal,
            opportunity_id=request.opportunity_id,
        )

    async def run_backtest(
        self,
        initial_capital: float,
        days: float,
        min_profit: float,
    ) -> BacktestReport:
        """Run a backtest against the current settings."""
        settings = await self._store.get_settings()
        return await self._backtester.run(initial_capital, days, min_profit, settings)

    def _on_trade(self, event: Event[Trade]) -> None:
        self._metrics.record_trade(event.payload.status.value)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _run_periodic(
        self,
        name: str,
        interval_s: float,
        tick: Callable[[], Awaitable[object]],
    ) -> None:
        """Run `tick` every `interval_s` seconds; a failing tick never stops the loop."""
        while self._running:
            try:
                await tick()
            except CollaboratorUnavailable as e:
                logger.warning(f"{name} tick skipped: {e}")
                self._metrics.increment_counter(f"{name}.skipped")
            except Exception:
                logger.exception(f"{name} tick failed")
                self._metrics.increment_counter(f"{name}.errors")

            await asyncio.sleep(interval_s)

    def start(self) -> None:
        """Start the price refresh and detection timers."""
        if self._running:
            return

        self._running = True
        self._shutdown_event.clear()
        self._started_at_ms = get_timestamp_ms()
        self._tasks = [
            asyncio.create_task(
                self._run_periodic(
                    "price_refresh",
                    self._app_settings.price_refresh_interval_s,
                    self.refresh_prices,
                ),
                name="price_refresh",
            ),
            asyncio.create_task(
                self._run_periodic(
                    "detection",
                    self._app_settings.detection_interval_s,
                    self.detect_once,
                ),
                name="detection",
            ),
        ]
        logger.info(
            f"Engine started: {len(self._detector.cycles)} triangular cycles, "
            f"refresh every {self._app_settings.price_refresh_interval_s}s, "
            f"detection every {self._app_settings.detection_interval_s}s"
        )

    async def stop(self) -> None:
        """Cancel the timers and wait for them to finish."""
        if not self._tasks:
            self._running = False
            return

        logger.info("Stopping engine...")
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Engine stopped")

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        self.start()
        try:
            await self._shutdown_event.wait()
        finally:
            await self.stop()

    def _handle_shutdown(self) -> None:
        logger.info("Shutdown signal received")
        self._shutdown_event.set()

    # =========================================================================
    # Accessors
    # =========================================================================

    def status(self) -> dict[str, Any]:
        """Get a snapshot of engine state and statistics."""
        detector_stats = self._detector.stats
        return {
            "running": self._running,
            "started_at": self._started_at_ms,
            "cycles": len(self._detector.cycles),
            "records": self._store.counts(),
            "detection": {
                "triangular_draws": detector_stats.triangular_draws,
                "cross_exchange_draws": detector_stats.cross_exchange_draws,
                "below_noise_floor": detector_stats.below_noise_floor,
                "opportunities_found": detector_stats.opportunities_found,
            },
            "admission": {
                "allowed": self._admission.allowed_count,
                "denied": self._admission.denied_count,
                "tracked_fingerprints": len(self._admission.store),
            },
            "execution": self._executor.get_stats(),
            "metrics": self._metrics.to_dict(),
        }

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def store(self) -> InMemoryRecordStore:
        return self._store

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def detector(self) -> OpportunityDetector:
        return self._detector

    @property
    def admission(self) -> AdmissionController:
        return self._admission

    @property
    def executor(self) -> ExecutionEngine:
        return self._executor

    @property
    def app_settings(self) -> AppSettings:
        return self._app_settings


@asynccontextmanager
async def create_engine(
    app_settings: AppSettings | None = None,
    **overrides: Any,
) -> AsyncIterator[ArbitrageEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            await engine.run()
    """
    engine = ArbitrageEngine(app_settings, **overrides)

    try:
        yield engine
    finally:
        await engine.stop()
