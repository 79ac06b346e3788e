"""
Type definitions for the arbitrage simulator.

This module contains the dataclasses, enums and Protocol definitions
shared across the detector, admission controller, execution engine and
their collaborators. Records use slots=True; paths are frozen so they
can be shared between opportunities, trades and events safely.
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

from arbsim.core.errors import ValidationError


if TYPE_CHECKING:
    from arbsim.config.settings import TradingSettings


# =============================================================================
# Enums
# =============================================================================


class PathKind(str, Enum):
    """Shape of an arbitrage path."""

    TRIANGULAR = "triangular"
    CROSS_EXCHANGE = "cross-exchange"


class OrderSide(str, Enum):
    """Direction of a triangular leg relative to its pair symbol."""

    BUY = "BUY"
    SELL = "SELL"


class OpportunityStatus(str, Enum):
    """Lifecycle status of a detected opportunity."""

    ACTIVE = "active"


class TradeStatus(str, Enum):
    """Outcome of a trade record."""

    SIMULATED = "simulated"
    EXECUTED = "executed"
    FAILED = "failed"
    BACKTESTED = "backtested"


class StepStatus(str, Enum):
    """Outcome of a single execution hop."""

    COMPLETED = "completed"
    FAILED = "failed"


class Severity(str, Enum):
    """Notification severity."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# =============================================================================
# Path Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ArbitragePath:
    """
    Ordered hops of an arbitrage opportunity.

    exchanges, pairs and prices are parallel sequences of two or three
    entries. Triangular paths stay on one exchange for all three legs;
    cross-exchange paths may carry one transfer fee (percent) per hop.
    """

    kind: PathKind
    exchanges: tuple[str, ...]
    pairs: tuple[str, ...]
    prices: tuple[float, ...]
    transfer_fees: tuple[float, ...] | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", PathKind(self.kind))
            object.__setattr__(self, "prices", tuple(float(p) for p in self.prices))
            if self.transfer_fees is not None:
                object.__setattr__(
                    self, "transfer_fees", tuple(float(f) for f in self.transfer_fees)
                )
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid path values: {e}") from e
        object.__setattr__(self, "exchanges", tuple(self.exchanges))
        object.__setattr__(self, "pairs", tuple(self.pairs))
        self._validate()

    def _validate(self) -> None:
        hops = len(self.exchanges)
        if not hops == len(self.pairs) == len(self.prices):
            raise ValidationError(
                f"Path sequences differ in length: exchanges={hops}, "
                f"pairs={len(self.pairs)}, prices={len(self.prices)}"
            )
        if hops not in (2, 3):
            raise ValidationError(f"Path must have 2 or 3 hops, got {hops}")

        if any(not isinstance(e, str) or not e for e in self.exchanges):
            raise ValidationError("Exchange ids must be non-empty strings")
        if any(not isinstance(p, str) or not p for p in self.pairs):
            raise ValidationError("Pair symbols must be non-empty strings")
        if any(not math.isfinite(p) or p <= 0 for p in self.prices):
            raise ValidationError("Prices must be finite and positive")

        if self.kind is PathKind.TRIANGULAR:
            if hops != 3:
                raise ValidationError("Triangular paths have exactly 3 legs")
            if len(set(self.exchanges)) != 1:
                raise ValidationError("Triangular legs must share one exchange")
            if self.transfer_fees is not None:
                raise ValidationError("Triangular paths carry no transfer fees")
        elif self.transfer_fees is not None and len(self.transfer_fees) != hops:
            raise ValidationError(
                f"Expected {hops} transfer fees, got {len(self.transfer_fees)}"
            )

    @property
    def hop_count(self) -> int:
        """Number of hops in the path."""
        return len(self.exchanges)

    @property
    def spread(self) -> float:
        """Absolute difference between the last and first quote."""
        return abs(self.prices[-1] - self.prices[0])

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict."""
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "exchanges": list(self.exchanges),
            "pairs": list(self.pairs),
            "prices": list(self.prices),
        }
        if self.transfer_fees is not None:
            data["transfer_fees"] = list(self.transfer_fees)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ArbitragePath":
        """
        Build a path from a decoded payload.

        Raises:
            ValidationError: If required keys are missing or values are invalid.
        """
        try:
            transfer_fees = data.get("transfer_fees")
            return cls(
                kind=data["kind"],
                exchanges=_sequence(data["exchanges"], "exchanges"),
                pairs=_sequence(data["pairs"], "pairs"),
                prices=_numbers(data["prices"], "prices"),
                transfer_fees=(
                    _numbers(transfer_fees, "transfer_fees") if transfer_fees is not None else None
                ),
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Invalid path payload: {e!r}") from e


def _sequence(value: Any, field_name: str) -> tuple[Any, ...]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"Path {field_name} must be a list, got {type(value).__name__}")
    return tuple(value)


def _numbers(value: Any, field_name: str) -> tuple[float, ...]:
    items = _sequence(value, field_name)
    # bool is an int subclass; JSON true/false is not a price.
    if any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in items):
        raise ValidationError(f"Path {field_name} must contain only numbers")
    return items


@dataclass(slots=True, frozen=True)
class TriangleLeg:
    """One leg of a triangular cycle: trade `pair` in direction `side`."""

    pair: str
    side: OrderSide

    def __repr__(self) -> str:
        return f"{self.pair}:{self.side.value}"


@dataclass(slots=True, frozen=True)
class TriangleCycle:
    """
    Named triangular cycle from the catalog.

    A cycle is only a candidate when all three of its pair symbols are
    enabled in the current settings.
    """

    name: str
    legs: tuple[TriangleLeg, TriangleLeg, TriangleLeg]

    def __post_init__(self) -> None:
        object.__setattr__(self, "legs", tuple(self.legs))
        if len(self.legs) != 3:
            raise ValidationError(
                f"Triangle cycle {self.name!r} needs 3 legs, got {len(self.legs)}"
            )

    @property
    def pairs(self) -> tuple[str, ...]:
        """Pair symbols in leg order."""
        return tuple(leg.pair for leg in self.legs)

    def is_enabled(self, enabled_pairs: frozenset[str] | set[str]) -> bool:
        """Check whether every leg's pair is enabled."""
        return all(leg.pair in enabled_pairs for leg in self.legs)


# =============================================================================
# Opportunity Types
# =============================================================================


@dataclass(slots=True)
class Opportunity:
    """Detected arbitrage opportunity."""

    id: str
    path: ArbitragePath
    profit_percent: float
    fingerprint: str
    detected_at_ms: int
    status: OpportunityStatus = OpportunityStatus.ACTIVE

    @property
    def kind(self) -> PathKind:
        return self.path.kind

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "path": self.path.to_dict(),
            "profit_percent": self.profit_percent,
            "fingerprint": self.fingerprint,
            "status": self.status.value,
            "detected_at": self.detected_at_ms,
        }


@dataclass(slots=True)
class ExecutionStats:
    """
    Automatic-execution history for one fingerprint.

    Timestamps are Unix milliseconds; None means "never".
    """

    execution_count: int = 0
    cumulative_exposure: float = 0.0
    last_executed_at_ms: int | None = None
    sequential_executions: int = 0
    last_sequential_reset_at_ms: int | None = None


# =============================================================================
# Trade Types
# =============================================================================


@dataclass(slots=True)
class ExecutionStep:
    """Recorded outcome of one hop."""

    exchange: str
    action: str
    status: StepStatus
    amount: float
    price: float
    error: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == StepStatus.COMPLETED

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "exchange": self.exchange,
            "action": self.action,
            "status": self.status.value,
            "amount": self.amount,
            "price": self.price,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(slots=True)
class ExecutionDetails:
    """Step-level record of a stepwise execution."""

    steps: list[ExecutionStep] = field(default_factory=list)
    fallback_used: bool = False
    retry_count: int = 0

    @property
    def all_completed(self) -> bool:
        return all(step.is_completed for step in self.steps)

    @property
    def failed_steps(self) -> list[ExecutionStep]:
        return [step for step in self.steps if not step.is_completed]

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [step.to_dict() for step in self.steps],
            "fallback_used": self.fallback_used,
            "retry_count": self.retry_count,
        }


@dataclass(slots=True)
class Trade:
    """
    Persisted trade record.

    final_amount is derived from initial_amount + profit_amount and
    cannot be set independently.
    """

    id: str
    path: ArbitragePath
    initial_amount: float
    profit_percent: float
    profit_amount: float
    status: TradeStatus
    timestamp_ms: int
    opportunity_id: str | None = None
    execution_details: ExecutionDetails | None = None
    final_amount: float = field(init=False)

    def __post_init__(self) -> None:
        self.final_amount = self.initial_amount + self.profit_amount

    @property
    def is_profitable(self) -> bool:
        return self.profit_amount > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "opportunity_id": self.opportunity_id,
            "path": self.path.to_dict(),
            "initial_amount": self.initial_amount,
            "final_amount": self.final_amount,
            "profit_percent": self.profit_percent,
            "profit_amount": self.profit_amount,
            "status": self.status.value,
            "execution_details": (
                self.execution_details.to_dict() if self.execution_details else None
            ),
            "timestamp": self.timestamp_ms,
        }


# =============================================================================
# Market & Notification Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class PriceTick:
    """Single quote observed for an exchange/pair."""

    exchange: str
    symbol: str
    price: float
    timestamp_ms: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "exchange": self.exchange,
            "symbol": self.symbol,
            "price": self.price,
            "timestamp": self.timestamp_ms,
        }


@dataclass(slots=True, frozen=True)
class NotificationMetadata:
    """References attached to a notification."""

    opportunity_id: str | None = None
    trade_id: str | None = None
    exchange: str | None = None
    pair: str | None = None
    fingerprint: str | None = None

    def to_dict(self) -> dict[str, str]:
        return {
            name: value
            for name in self.__slots__
            if (value := getattr(self, name)) is not None
        }


@dataclass(slots=True)
class Notification:
    """User-facing notification."""

    id: str
    type: str
    title: str
    message: str
    severity: Severity
    timestamp_ms: int
    metadata: NotificationMetadata = field(default_factory=NotificationMetadata)
    is_read: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "metadata": self.metadata.to_dict(),
            "is_read": self.is_read,
            "timestamp": self.timestamp_ms,
        }


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class PriceOracle(Protocol):
    """Source of quotes; freshness policy belongs to the caller."""

    def quote(self, exchange: str, pair: str) -> float:
        """Return the current price of `pair` on `exchange`."""
        ...

    def pairs(self) -> list[str]:
        """Return the pair symbols this oracle can quote."""
        ...


class SettingsProvider(Protocol):
    """Read-only source of the current trading settings."""

    async def get_settings(self) -> "TradingSettings":
        """Return a settings snapshot."""
        ...


class NotificationSink(Protocol):
    """Destination for user-facing notifications."""

    async def add_notification(self, notification: Notification) -> Notification:
        """Store a notification."""
        ...


class RecordStore(SettingsProvider, NotificationSink, Protocol):
    """Append/query/clear contract for simulator records."""

    async def add_price(self, tick: PriceTick) -> PriceTick:
        ...

    async def add_opportunity(self, opportunity: Opportunity) -> Opportunity:
        ...

    async def get_opportunity(self, opportunity_id: str) -> Opportunity | None:
        ...

    async def get_active_opportunities(self, limit: int = ...) -> list[Opportunity]:
        ...

    async def add_trade(self, trade: Trade) -> Trade:
        ...

    async def get_all_trades(self) -> list[Trade]:
        ...

    async def clear(self) -> None:
        ...
