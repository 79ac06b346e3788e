"""Exception hierarchy for the arbitrage simulator."""


class ArbitrageError(Exception):
    """Base error for the simulator."""


class ValidationError(ArbitrageError, ValueError):
    """Malformed path, settings or request payload rejected at a boundary."""


class QuoteUnavailable(ArbitrageError):
    """The price oracle cannot quote an exchange/pair combination."""

    def __init__(self, exchange: str, pair: str) -> None:
        super().__init__(f"No quote available for {pair} on {exchange}")
        self.exchange = exchange
        self.pair = pair


class HopFailure(ArbitrageError):
    """A single simulated trade step failed."""

    def __init__(self, exchange: str, pair: str, message: str) -> None:
        super().__init__(message)
        self.exchange = exchange
        self.pair = pair


class CollaboratorUnavailable(ArbitrageError):
    """A record store, broadcaster or notification sink cannot serve requests."""
