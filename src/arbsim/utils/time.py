"""
Time utilities.

Records carry Unix millisecond timestamps; latency measurement uses
microseconds.
"""

import time


def get_timestamp_ms() -> int:
    """Current Unix timestamp in milliseconds."""
    return time.time_ns() // 1_000_000


def get_timestamp_us() -> int:
    """Current Unix timestamp in microseconds."""
    return time.time_ns() // 1000


class LatencyTimer:
    """
    Context manager for measuring operation latency.

    Example:
        >>> with LatencyTimer() as timer:
        ...     do_something()
        >>> print(f"Latency: {timer.latency_us}μs")
    """

    __slots__ = ("start_us", "end_us", "latency_us")

    def __init__(self) -> None:
        self.start_us: int = 0
        self.end_us: int = 0
        self.latency_us: int = 0

    def __enter__(self) -> "LatencyTimer":
        self.start_us = get_timestamp_us()
        return self

    def __exit__(self, *args: object) -> None:
        self.end_us = get_timestamp_us()
        self.latency_us = self.end_us - self.start_us
