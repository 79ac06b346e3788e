"""Strategy module for opportunity detection, profit and fingerprinting."""

from arbsim.strategy.calculator import ProfitCalculator
from arbsim.strategy.fingerprint import fingerprint
from arbsim.strategy.graph import CycleDiscovery, split_pair
from arbsim.strategy.opportunity import OpportunityDetector, OpportunityStats


__all__ = [
    "CycleDiscovery",
    "OpportunityDetector",
    "OpportunityStats",
    "ProfitCalculator",
    "fingerprint",
    "split_pair",
]
