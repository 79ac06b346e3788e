"""Telemetry module for logging, metrics and notifications."""

from arbsim.telemetry.logger import AsyncLogger, setup_logging
from arbsim.telemetry.metrics import LatencyStats, MetricsCollector, build_analytics
from arbsim.telemetry.notifications import Notifier


__all__ = [
    "AsyncLogger",
    "LatencyStats",
    "MetricsCollector",
    "Notifier",
    "build_analytics",
    "setup_logging",
]
