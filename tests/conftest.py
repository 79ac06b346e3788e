"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from typing import Any

import pytest

from arbsim.config.settings import AppSettings, TradingSettings
from arbsim.core.event_bus import Event, EventBus
from arbsim.core.types import ArbitragePath, OrderSide, PathKind, TriangleCycle, TriangleLeg
from arbsim.storage.memory import InMemoryRecordStore
from arbsim.telemetry.notifications import Notifier
from tests.mocks.oracle import StaticPriceOracle


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def trading_settings() -> TradingSettings:
    """Default trading settings."""
    return TradingSettings()


@pytest.fixture
def app_settings() -> AppSettings:
    """Process settings with a fixed seed and fast timers."""
    return AppSettings(
        rng_seed=7,
        price_refresh_interval_s=0.01,
        detection_interval_s=0.01,
        use_uvloop=False,
    )


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def usdt_btc_eth_cycle() -> TriangleCycle:
    """USDT -> BTC -> ETH -> USDT cycle."""
    return TriangleCycle(
        name="USDT-BTC-ETH",
        legs=(
            TriangleLeg("BTC/USDT", OrderSide.BUY),
            TriangleLeg("ETH/BTC", OrderSide.BUY),
            TriangleLeg("ETH/USDT", OrderSide.SELL),
        ),
    )


@pytest.fixture
def triangular_path() -> ArbitragePath:
    """Three-leg triangular path on binance."""
    return ArbitragePath(
        kind=PathKind.TRIANGULAR,
        exchanges=("binance", "binance", "binance"),
        pairs=("BTC/USDT", "ETH/BTC", "ETH/USDT"),
        prices=(45000.0, 0.0555, 2500.0),
    )


@pytest.fixture
def cross_path() -> ArbitragePath:
    """Two-hop BTC/USDT path from binance to kraken."""
    return ArbitragePath(
        kind=PathKind.CROSS_EXCHANGE,
        exchanges=("binance", "kraken"),
        pairs=("BTC/USDT", "BTC/USDT"),
        prices=(45000.0, 45450.0),
        transfer_fees=(0.1, 0.12),
    )


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def static_oracle() -> StaticPriceOracle:
    """Oracle quoting the default pairs at fixed prices on every exchange."""
    return StaticPriceOracle(
        pair_prices={
            "BTC/USDT": 45000.0,
            "ETH/USDT": 2500.0,
            "BNB/USDT": 350.0,
            "ETH/BTC": 0.0555,
            "BNB/ETH": 0.14,
        }
    )


@pytest.fixture
def store() -> InMemoryRecordStore:
    """Empty in-memory store with default settings."""
    return InMemoryRecordStore()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def captured_events(event_bus: EventBus) -> list[Event[Any]]:
    """Every event published on `event_bus`, in order."""
    events: list[Event[Any]] = []
    event_bus.subscribe_all(events.append)
    return events


@pytest.fixture
def notifier(store: InMemoryRecordStore, event_bus: EventBus) -> Notifier:
    return Notifier(store, event_bus)
