"""Storage module for simulator records."""

from arbsim.storage.memory import InMemoryRecordStore


__all__ = ["InMemoryRecordStore"]
