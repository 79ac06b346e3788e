"""Execution module for admission control and stepwise trade execution."""

from arbsim.execution.admission import (
    AdmissionController,
    AdmissionDecision,
    ExecutionStatsStore,
)
from arbsim.execution.executor import ExecutionEngine, ExecutorConfig


__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "ExecutionEngine",
    "ExecutionStatsStore",
    "ExecutorConfig",
]
