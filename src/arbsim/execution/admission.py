"""
Admission control for automatic repeat trades.

Decides whether an opportunity whose fingerprint has already been traded
may be traded again, based on per-fingerprint execution history:

- execution count cap
- cumulative exposure cap
- cooldown between executions
- consecutive executions within a rolling window (10x cooldown)

Evaluation is pure; history is only mutated by commit(), and
run_admitted() makes evaluate + action + commit atomic per fingerprint.
"""

import asyncio
import logging
import math
from collections import OrderedDict
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import TypeVar

from arbsim.config.constants import (
    DEFAULT_MAX_TRACKED_FINGERPRINTS,
    DEFAULT_STATS_TTL_SECONDS,
    SEQUENTIAL_WINDOW_MULTIPLIER,
)
from arbsim.config.settings import TradingSettings
from arbsim.core.types import ExecutionStats
from arbsim.utils.time import get_timestamp_ms


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class AdmissionDecision:
    """Result of an admission check."""

    __slots__ = ("allowed", "reason")

    def __init__(self, allowed: bool, reason: str = "") -> None:
        self.allowed = allowed
        self.reason = reason

    def __bool__(self) -> bool:
        return self.allowed

    def __repr__(self) -> str:
        if self.allowed:
            return "AdmissionDecision(allowed=True)"
        return f"AdmissionDecision(allowed=False, reason={self.reason!r})"


# =============================================================================
# Execution History
# =============================================================================


class ExecutionStatsStore:
    """
    Bounded per-fingerprint execution history.

    Entries expire `ttl_s` seconds after their last update; when more than
    `max_size` fingerprints are tracked the least recently updated one is
    evicted.
    """

    def __init__(
        self,
        ttl_s: float = DEFAULT_STATS_TTL_SECONDS,
        max_size: int = DEFAULT_MAX_TRACKED_FINGERPRINTS,
    ) -> None:
        self._ttl_ms = int(ttl_s * 1000)
        self._max_size = max_size
        self._entries: OrderedDict[str, tuple[ExecutionStats, int]] = OrderedDict()
        self._evicted = 0

    def get(self, fingerprint: str, now_ms: int) -> ExecutionStats | None:
        """Get live stats for a fingerprint, dropping them if expired."""
        entry = self._entries.get(fingerprint)
        if entry is None:
            return None

        stats, updated_at = entry
        if now_ms - updated_at > self._ttl_ms:
            del self._entries[fingerprint]
            self._evicted += 1
            return None
        return stats

    def put(self, fingerprint: str, stats: ExecutionStats, now_ms: int) -> None:
        """Store stats and mark the fingerprint as most recently updated."""
        self._entries[fingerprint] = (stats, now_ms)
        self._entries.move_to_end(fingerprint)

        while len(self._entries) > self._max_size:
            evicted, _ = self._entries.popitem(last=False)
            self._evicted += 1
            logger.debug(f"Evicted execution stats for {evicted[:8]}")

    def reset_sequential(self, fingerprint: str, now_ms: int) -> bool:
        """
        Clear the consecutive-execution counter of a fingerprint.

        Returns:
            True if the fingerprint was tracked.
        """
        stats = self.get(fingerprint, now_ms)
        if stats is None:
            return False
        stats.sequential_executions = 0
        stats.last_sequential_reset_at_ms = now_ms
        return True

    def clear(self) -> None:
        self._entries.clear()

    @property
    def evicted_count(self) -> int:
        return self._evicted

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        return fingerprint in self._entries


# =============================================================================
# Admission Controller
# =============================================================================


class AdmissionController:
    """
    Gates automatic executions per fingerprint.

    Features:
    - Pure, ordered evaluation (first failing check wins)
    - Bounded TTL + LRU history store
    - Per-fingerprint locks, reclaimed when idle
    - Injectable clock
    """

    def __init__(
        self,
        store: ExecutionStatsStore | None = None,
        clock: Callable[[], int] = get_timestamp_ms,
    ) -> None:
        """
        Initialize admission controller.

        Args:
            store: Execution history store.
            clock: Millisecond clock used when `now_ms` is not given.
        """
        self._store = store or ExecutionStatsStore()
        self._clock = clock
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._allowed = 0
        self._denied = 0

    @staticmethod
    def evaluate(
        stats: ExecutionStats | None,
        settings: TradingSettings,
        trade_amount: float,
        now_ms: int | None = None,
    ) -> AdmissionDecision:
        """
        Decide whether a repeat execution is allowed.

        Args:
            stats: History for the fingerprint, None if never executed.
            settings: Current trading settings.
            trade_amount: Amount the execution would commit.
            now_ms: Current time in Unix milliseconds (defaults to now).

        Returns:
            AdmissionDecision with the reason of the first failed check.
        """
        if now_ms is None:
            now_ms = get_timestamp_ms()

        if not settings.enable_repeat_autotrade:
            return AdmissionDecision(False, "Repeat auto-trade feature disabled")

        if stats is None:
            return AdmissionDecision(True)

        max_executions = settings.max_executions_per_opportunity
        if stats.execution_count >= max_executions:
            return AdmissionDecision(
                False, f"Max executions per opportunity reached ({max_executions})"
            )

        exposure_cap = settings.max_exposure_per_opportunity
        if stats.cumulative_exposure + trade_amount > exposure_cap:
            return AdmissionDecision(
                False,
                f"Max exposure per opportunity would be exceeded ({_format_amount(exposure_cap)})",
            )

        cooldown_ms = settings.min_cooldown_ms
        elapsed_ms = now_ms - (stats.last_executed_at_ms or 0)
        if elapsed_ms < cooldown_ms:
            remaining_s = math.ceil((cooldown_ms - elapsed_ms) / 1000)
            return AdmissionDecision(
                False, f"Cooldown period active ({remaining_s}s remaining)"
            )

        window_ms = SEQUENTIAL_WINDOW_MULTIPLIER * cooldown_ms
        since_reset_ms = now_ms - (stats.last_sequential_reset_at_ms or 0)
        sequential = stats.sequential_executions if since_reset_ms <= window_ms else 0
        max_sequential = settings.max_sequential_executions
        if sequential >= max_sequential:
            return AdmissionDecision(
                False, f"Max sequential executions reached ({max_sequential})"
            )

        return AdmissionDecision(True)

    def check(
        self,
        fingerprint: str,
        settings: TradingSettings,
        trade_amount: float,
        now_ms: int | None = None,
    ) -> AdmissionDecision:
        """Evaluate a fingerprint against its stored history."""
        now = self._clock() if now_ms is None else now_ms
        return self.evaluate(self._store.get(fingerprint, now), settings, trade_amount, now)

    def commit(
        self,
        fingerprint: str,
        trade_amount: float,
        settings: TradingSettings | None = None,
        now_ms: int | None = None,
    ) -> ExecutionStats:
        """
        Record an automatic execution of a fingerprint.

        The consecutive counter restarts at 1 when the fingerprint has no
        sequential reset time or the last reset is older than the window.

        Args:
            fingerprint: Executed fingerprint.
            trade_amount: Amount committed by the execution.
            settings: Settings supplying the cooldown for the window.
            now_ms: Current time in Unix milliseconds.

        Returns:
            Updated stats.
        """
        now = self._clock() if now_ms is None else now_ms
        cooldown_ms = (settings or TradingSettings()).min_cooldown_ms
        window_ms = SEQUENTIAL_WINDOW_MULTIPLIER * cooldown_ms

        stats = self._store.get(fingerprint, now) or ExecutionStats()
        stats.execution_count += 1
        stats.cumulative_exposure += trade_amount
        stats.last_executed_at_ms = now

        reset_at = stats.last_sequential_reset_at_ms
        if reset_at is None or now - reset_at > window_ms:
            stats.sequential_executions = 1
            stats.last_sequential_reset_at_ms = now
        else:
            stats.sequential_executions += 1

        self._store.put(fingerprint, stats, now)
        return stats

    async def run_admitted(
        self,
        fingerprint: str,
        settings: TradingSettings,
        trade_amount: float,
        action: Callable[[], Awaitable[T]],
        took_effect: Callable[[], bool] | None = None,
    ) -> tuple[AdmissionDecision, T | None]:
        """
        Evaluate, execute and commit as one critical section.

        Concurrent calls for the same fingerprint are serialized, so two
        detections of the same opportunity can never both pass a check
        that only one of them should.

        Args:
            fingerprint: Opportunity fingerprint.
            settings: Current trading settings.
            trade_amount: Amount the execution would commit.
            action: Coroutine factory run when admitted.
            took_effect: Checked when the action raises; if it returns True
                the execution still counts and is committed before the
                error propagates.

        Returns:
            (decision, action result or None if denied)
        """
        async with self._locked(fingerprint):
            decision = self.check(fingerprint, settings, trade_amount)
            if not decision:
                self._denied += 1
                logger.info(f"Admission denied for {fingerprint[:8]}: {decision.reason}")
                return decision, None

            self._allowed += 1
            logger.info(f"Admission granted for {fingerprint[:8]} ({trade_amount:.2f})")
            try:
                result = await action()
            except Exception:
                if took_effect is not None and took_effect():
                    logger.warning(
                        f"Execution for {fingerprint[:8]} failed after taking effect; "
                        "committing it"
                    )
                    self.commit(fingerprint, trade_amount, settings)
                raise
            self.commit(fingerprint, trade_amount, settings)
            return decision, result

    @asynccontextmanager
    async def _locked(self, fingerprint: str) -> AsyncIterator[None]:
        lock, waiters = self._locks.get(fingerprint, (None, 0))
        if lock is None:
            lock = asyncio.Lock()
        self._locks[fingerprint] = (lock, waiters + 1)

        try:
            async with lock:
                yield
        finally:
            lock, waiters = self._locks[fingerprint]
            if waiters <= 1:
                del self._locks[fingerprint]
            else:
                self._locks[fingerprint] = (lock, waiters - 1)

    def stats_for(self, fingerprint: str) -> ExecutionStats | None:
        """Get stored history for a fingerprint."""
        return self._store.get(fingerprint, self._clock())

    @property
    def store(self) -> ExecutionStatsStore:
        return self._store

    @property
    def allowed_count(self) -> int:
        return self._allowed

    @property
    def denied_count(self) -> int:
        return self._denied

    @property
    def active_lock_count(self) -> int:
        """Number of fingerprints with a held or awaited lock."""
        return len(self._locks)
