"""Core module containing the event bus, errors and type definitions."""

from arbsim.core.errors import (
    ArbitrageError,
    CollaboratorUnavailable,
    HopFailure,
    QuoteUnavailable,
    ValidationError,
)
from arbsim.core.event_bus import Event, EventBus, EventType
from arbsim.core.types import (
    ArbitragePath,
    ExecutionDetails,
    ExecutionStats,
    ExecutionStep,
    Notification,
    NotificationMetadata,
    Opportunity,
    OpportunityStatus,
    OrderSide,
    PathKind,
    PriceOracle,
    PriceTick,
    Severity,
    StepStatus,
    Trade,
    TradeStatus,
    TriangleCycle,
    TriangleLeg,
)


__all__ = [
    "ArbitrageError",
    "ArbitragePath",
    "CollaboratorUnavailable",
    "Event",
    "EventBus",
    "EventType",
    "ExecutionDetails",
    "ExecutionStats",
    "ExecutionStep",
    "HopFailure",
    "Notification",
    "NotificationMetadata",
    "Opportunity",
    "OpportunityStatus",
    "OrderSide",
    "PathKind",
    "PriceOracle",
    "PriceTick",
    "QuoteUnavailable",
    "Severity",
    "StepStatus",
    "Trade",
    "TradeStatus",
    "TriangleCycle",
    "TriangleLeg",
    "ValidationError",
]
