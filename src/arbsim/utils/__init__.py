"""Utility functions for the arbitrage simulator."""

from arbsim.utils.time import (
    LatencyTimer,
    get_timestamp_ms,
    get_timestamp_us,
)


__all__ = [
    "LatencyTimer",
    "get_timestamp_ms",
    "get_timestamp_us",
]
