"""
Multi-Exchange Arbitrage Simulator.

An asynchronous simulation of an automated arbitrage bot: it detects
triangular and cross-exchange opportunities from a price oracle,
throttles repeated automatic execution per opportunity shape, and
walks simulated multi-hop trades with partial-failure accounting.
"""

__version__ = "1.0.0"
