"""
Unit tests for core record types.
"""

import pytest

from arbsim.core.errors import ValidationError
from arbsim.core.types import (
    ArbitragePath,
    ExecutionDetails,
    ExecutionStep,
    NotificationMetadata,
    OrderSide,
    PathKind,
    StepStatus,
    Trade,
    TradeStatus,
    TriangleCycle,
    TriangleLeg,
)


class TestArbitragePath:
    """Tests for ArbitragePath validation."""

    def test_valid_triangular(self, triangular_path: ArbitragePath) -> None:
        assert triangular_path.hop_count == 3
        assert triangular_path.kind is PathKind.TRIANGULAR

    def test_kind_coerced_from_string(self) -> None:
        path = ArbitragePath(
            kind="cross-exchange",
            exchanges=("binance", "kraken"),
            pairs=("BTC/USDT", "BTC/USDT"),
            prices=(1, 2),
        )

        assert path.kind is PathKind.CROSS_EXCHANGE
        assert path.prices == (1.0, 2.0)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValidationError, match="differ in length"):
            ArbitragePath(
                kind=PathKind.CROSS_EXCHANGE,
                exchanges=("binance", "kraken"),
                pairs=("BTC/USDT",),
                prices=(1.0, 2.0),
            )

    @pytest.mark.parametrize("hops", [1, 4])
    def test_hop_count_bounds(self, hops: int) -> None:
        with pytest.raises(ValidationError, match="2 or 3 hops"):
            ArbitragePath(
                kind=PathKind.CROSS_EXCHANGE,
                exchanges=tuple(f"ex{i}" for i in range(hops)),
                pairs=("BTC/USDT",) * hops,
                prices=(1.0,) * hops,
            )

    def test_triangular_needs_three_legs(self) -> None:
        with pytest.raises(ValidationError, match="exactly 3 legs"):
            ArbitragePath(
                kind=PathKind.TRIANGULAR,
                exchanges=("binance", "binance"),
                pairs=("BTC/USDT", "ETH/BTC"),
                prices=(1.0, 2.0),
            )

    def test_triangular_single_exchange(self) -> None:
        with pytest.raises(ValidationError, match="one exchange"):
            ArbitragePath(
                kind=PathKind.TRIANGULAR,
                exchanges=("binance", "kraken", "binance"),
                pairs=("BTC/USDT", "ETH/BTC", "ETH/USDT"),
                prices=(1.0, 2.0, 3.0),
            )

    @pytest.mark.parametrize("price", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_price(self, price: float) -> None:
        with pytest.raises(ValidationError):
            ArbitragePath(
                kind=PathKind.CROSS_EXCHANGE,
                exchanges=("binance", "kraken"),
                pairs=("BTC/USDT", "BTC/USDT"),
                prices=(45000.0, price),
            )

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValidationError):
            ArbitragePath(
                kind="quadrangular",
                exchanges=("binance", "kraken"),
                pairs=("BTC/USDT", "BTC/USDT"),
                prices=(1.0, 2.0),
            )

    def test_transfer_fee_count(self) -> None:
        with pytest.raises(ValidationError, match="transfer fees"):
            ArbitragePath(
                kind=PathKind.CROSS_EXCHANGE,
                exchanges=("binance", "kraken"),
                pairs=("BTC/USDT", "BTC/USDT"),
                prices=(1.0, 2.0),
                transfer_fees=(0.1,),
            )

    def test_spread(self, cross_path: ArbitragePath) -> None:
        assert cross_path.spread == pytest.approx(450.0)

    def test_dict_round_trip(self, cross_path: ArbitragePath) -> None:
        assert ArbitragePath.from_dict(cross_path.to_dict()) == cross_path

    def test_from_dict_missing_key(self) -> None:
        with pytest.raises(ValidationError, match="Invalid path payload"):
            ArbitragePath.from_dict({"kind": "triangular", "exchanges": ["binance"]})

    @pytest.mark.parametrize(
        "overrides",
        [
            {"exchanges": "xxx"},
            {"pairs": "BTC/USDT"},
            {"prices": "123"},
            {"prices": [45000.0, "45450"]},
            {"prices": [True, 2.0]},
            {"transfer_fees": "01"},
            {"exchanges": {"binance": 1, "kraken": 2}},
        ],
    )
    def test_from_dict_rejects_non_list_fields(
        self, cross_path: ArbitragePath, overrides: dict[str, object]
    ) -> None:
        payload = {**cross_path.to_dict(), **overrides}

        with pytest.raises(ValidationError):
            ArbitragePath.from_dict(payload)

    def test_from_dict_rejects_string_triangle(self) -> None:
        payload = {
            "kind": "triangular",
            "exchanges": "xxx",
            "pairs": ["BTC/USDT", "ETH/BTC", "ETH/USDT"],
            "prices": "123",
        }

        with pytest.raises(ValidationError, match="must be a list"):
            ArbitragePath.from_dict(payload)


class TestTriangleCycle:
    def test_requires_three_legs(self) -> None:
        with pytest.raises(ValidationError, match="needs 3 legs"):
            TriangleCycle(
                name="USDT-BTC",
                legs=(  # type: ignore[arg-type]
                    TriangleLeg("BTC/USDT", OrderSide.BUY),
                    TriangleLeg("BTC/USDT", OrderSide.SELL),
                ),
            )

    def test_legs_stored_as_tuple(self, usdt_btc_eth_cycle: TriangleCycle) -> None:
        cycle = TriangleCycle(name="copy", legs=list(usdt_btc_eth_cycle.legs))  # type: ignore[arg-type]

        assert cycle.legs == usdt_btc_eth_cycle.legs
        assert cycle.pairs == ("BTC/USDT", "ETH/BTC", "ETH/USDT")


class TestTrade:
    """Tests for Trade records."""

    def test_final_amount_derived(self, cross_path: ArbitragePath) -> None:
        trade = Trade(
            id="t1",
            path=cross_path,
            initial_amount=1000.0,
            profit_percent=0.58,
            profit_amount=5.8,
            status=TradeStatus.EXECUTED,
            timestamp_ms=1,
        )

        assert trade.final_amount == pytest.approx(1005.8)
        assert trade.is_profitable
        assert trade.to_dict()["final_amount"] == pytest.approx(1005.8)

    def test_failed_trade_keeps_principal(self, cross_path: ArbitragePath) -> None:
        details = ExecutionDetails(
            steps=[
                ExecutionStep("binance", "trade BTC/USDT", StepStatus.COMPLETED, 1000.0, 45000.0),
                ExecutionStep(
                    "kraken", "trade BTC/USDT", StepStatus.FAILED, 1000.0, 45450.0, "boom"
                ),
            ],
            fallback_used=True,
            retry_count=1,
        )
        trade = Trade(
            id="t2",
            path=cross_path,
            initial_amount=1000.0,
            profit_percent=0.58,
            profit_amount=0.0,
            status=TradeStatus.FAILED,
            timestamp_ms=1,
            execution_details=details,
        )

        assert trade.final_amount == 1000.0
        assert not trade.is_profitable
        assert not details.all_completed
        assert [step.exchange for step in details.failed_steps] == ["kraken"]
        assert trade.to_dict()["execution_details"]["steps"][1]["error"] == "boom"


class TestNotificationMetadata:
    def test_to_dict_skips_empty(self) -> None:
        metadata = NotificationMetadata(trade_id="t1", exchange="kraken")

        assert metadata.to_dict() == {"trade_id": "t1", "exchange": "kraken"}
