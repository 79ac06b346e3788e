"""Mock implementations for testing."""

from tests.mocks.oracle import StaticPriceOracle
from tests.mocks.rng import ScriptedRandom


__all__ = [
    "ScriptedRandom",
    "StaticPriceOracle",
]
