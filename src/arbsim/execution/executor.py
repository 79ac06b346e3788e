"""
Stepwise trade execution engine.

Walks an arbitrage path hop by hop against a simulated venue in which
every hop fails independently with a fixed probability. The walk never
aborts: a failed hop is recorded and the remaining hops still run, so a
trade is "executed" only if every step completed.
"""

import logging
import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from arbsim.config.constants import HOP_FAILURE_PROBABILITY
from arbsim.core.errors import HopFailure
from arbsim.core.event_bus import EventBus, EventType
from arbsim.core.types import (
    ArbitragePath,
    ExecutionDetails,
    ExecutionStep,
    NotificationMetadata,
    RecordStore,
    Severity,
    StepStatus,
    Trade,
    TradeStatus,
)
from arbsim.telemetry.notifications import Notifier
from arbsim.utils.time import LatencyTimer, get_timestamp_ms


logger = logging.getLogger(__name__)


@dataclass
class ExecutorConfig:
    """Executor configuration."""

    failure_probability: float = HOP_FAILURE_PROBABILITY  # Per-hop failure chance


class ExecutionEngine:
    """
    Executes and simulates trades along arbitrage paths.

    Features:
    - Sequential hop walk with per-hop simulated failures
    - Step-level execution details (fallback flag, retry count)
    - Exactly one persisted Trade and one trade event per call
    - Optional success/failure/partial-failure notifications
    """

    def __init__(
        self,
        store: RecordStore,
        event_bus: EventBus,
        notifier: Notifier,
        config: ExecutorConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize execution engine.

        Args:
            store: Trade persistence.
            event_bus: Event bus for trade events.
            notifier: Notification fan-out.
            config: Executor configuration.
            rng: Random source for hop failures.
        """
        self._store = store
        self._event_bus = event_bus
        self._notifier = notifier
        self._config = config or ExecutorConfig()
        self._rng = rng or random.Random()

        # Statistics
        self._total_executions = 0
        self._successful_executions = 0
        self._failed_executions = 0
        self._total_simulations = 0
        self._last_latency_us = 0

    async def execute(
        self,
        path: ArbitragePath,
        profit_percent: float,
        principal: float,
        opportunity_id: str | None = None,
        notifications_enabled: bool = True,
        on_persisted: Callable[[Trade], None] | None = None,
    ) -> Trade:
        """
        Execute a trade hop by hop.

        Args:
            path: Path to walk.
            profit_percent: Expected profit percentage.
            principal: Amount traded on every hop.
            opportunity_id: Source opportunity, if any.
            notifications_enabled: Emit notifications for this trade.
            on_persisted: Called with the trade once it is stored, before the
                outcome notification.

        Returns:
            Persisted trade, "executed" or "failed".
        """
        self._total_executions += 1
        details = ExecutionDetails()

        with LatencyTimer() as timer:
            for index in range(path.hop_count):
                step = self._run_step(path, index, principal)
                details.steps.append(step)

                if step.is_completed or index == path.hop_count - 1:
                    continue

                details.fallback_used = True
                details.retry_count += 1
                if notifications_enabled:
                    await self._notifier.notify(
                        type="execution",
                        title="Execution step failed",
                        message=(
                            f"Step {index + 1} ({step.action} on {step.exchange}) failed: "
                            f"{step.error}. Continuing with remaining steps."
                        ),
                        severity=Severity.WARNING,
                        metadata=NotificationMetadata(
                            opportunity_id=opportunity_id,
                            exchange=step.exchange,
                            pair=path.pairs[index],
                        ),
                    )
        self._last_latency_us = timer.latency_us

        succeeded = details.all_completed
        trade = Trade(
            id=str(uuid.uuid4()),
            opportunity_id=opportunity_id,
            path=path,
            initial_amount=principal,
            profit_percent=profit_percent,
            profit_amount=principal * profit_percent / 100.0 if succeeded else 0.0,
            status=TradeStatus.EXECUTED if succeeded else TradeStatus.FAILED,
            execution_details=details,
            timestamp_ms=get_timestamp_ms(),
        )

        if succeeded:
            self._successful_executions += 1
            logger.info(
                f"Trade {trade.id[:8]} executed: {path.kind.value} "
                f"{profit_percent:+.4f}% ({trade.profit_amount:+.2f})"
            )
        else:
            self._failed_executions += 1
            logger.warning(
                f"Trade {trade.id[:8]} failed: "
                f"{len(details.failed_steps)}/{path.hop_count} steps failed"
            )

        await self._persist(trade, on_persisted)

        if notifications_enabled:
            await self._notify_outcome(trade)

        return trade

    async def simulate(
        self,
        path: ArbitragePath,
        profit_percent: float,
        principal: float,
        opportunity_id: str | None = None,
        backtest: bool = False,
    ) -> Trade:
        """
        Record a trade without walking any hops.

        Returns:
            Persisted trade, "simulated" or "backtested".
        """
        self._total_simulations += 1
        trade = Trade(
            id=str(uuid.uuid4()),
            opportunity_id=opportunity_id,
            path=path,
            initial_amount=principal,
            profit_percent=profit_percent,
            profit_amount=principal * profit_percent / 100.0,
            status=TradeStatus.BACKTESTED if backtest else TradeStatus.SIMULATED,
            timestamp_ms=get_timestamp_ms(),
        )
        await self._persist(trade)
        return trade

    def _run_step(self, path: ArbitragePath, index: int, principal: float) -> ExecutionStep:
        exchange = path.exchanges[index]
        pair = path.pairs[index]
        price = path.prices[index]
        action = f"trade {pair}"

        try:
            self._execute_hop(exchange, pair)
        except HopFailure as e:
            logger.warning(f"Hop {index + 1}/{path.hop_count} failed on {exchange} {pair}: {e}")
            return ExecutionStep(
                exchange=exchange,
                action=action,
                status=StepStatus.FAILED,
                amount=principal,
                price=price,
                error=str(e),
            )

        return ExecutionStep(
            exchange=exchange,
            action=action,
            status=StepStatus.COMPLETED,
            amount=principal,
            price=price,
        )

    def _execute_hop(self, exchange: str, pair: str) -> None:
        """
        Submit one hop to the simulated venue.

        Raises:
            HopFailure: If the venue rejects the hop.
        """
        if self._rng.random() < self._config.failure_probability:
            raise HopFailure(exchange, pair, f"Simulated failure on {exchange}")

    async def _persist(
        self, trade: Trade, on_persisted: Callable[[Trade], None] | None = None
    ) -> None:
        await self._store.add_trade(trade)
        if on_persisted is not None:
            on_persisted(trade)
        await self._event_bus.publish(EventType.TRADE, trade, source="executor")

    async def _notify_outcome(self, trade: Trade) -> None:
        metadata = NotificationMetadata(
            opportunity_id=trade.opportunity_id,
            trade_id=trade.id,
            exchange=trade.path.exchanges[0],
            pair=trade.path.pairs[0],
        )
        if trade.status == TradeStatus.EXECUTED:
            await self._notifier.notify(
                type="trade",
                title="Trade executed",
                message=(
                    f"{trade.path.kind.value} trade completed: "
                    f"{trade.profit_percent:+.2f}% ({trade.profit_amount:+.2f})"
                ),
                severity=Severity.SUCCESS,
                metadata=metadata,
            )
        else:
            failed = len(trade.execution_details.failed_steps) if trade.execution_details else 0
            await self._notifier.notify(
                type="trade",
                title="Trade failed",
                message=f"{trade.path.kind.value} trade failed: {failed} step(s) did not complete",
                severity=Severity.ERROR,
                metadata=metadata,
            )

    def get_stats(self) -> dict[str, int | float]:
        """Get execution statistics."""
        return {
            "total_executions": self._total_executions,
            "successful_executions": self._successful_executions,
            "failed_executions": self._failed_executions,
            "success_rate": (
                self._successful_executions / self._total_executions
                if self._total_executions > 0
                else 0.0
            ),
            "total_simulations": self._total_simulations,
            "last_latency_us": self._last_latency_us,
        }
