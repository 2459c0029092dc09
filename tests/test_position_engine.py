"""Tests for average-cost position reconstruction."""

from datetime import date
from decimal import Decimal

import pytest

from activity_ledger.constants import PositionStatus, TradeAction
from activity_ledger.services.fx_rate_resolver import FxRateTable, resolve_fx_rates
from activity_ledger.services.ledger_types import ForexTrade, TradeRecord
from activity_ledger.services.position_engine import (
    fold_symbol,
    reconstruct_positions,
    sort_trades,
)


def _trade(
    action: str,
    quantity: str,
    price: str,
    day: date = date(2026, 1, 5),
    symbol: str = "AAPL",
    currency: str = "SGD",
    commission: str = "0",
    realized_pnl: str | None = None,
    sequence: int = 0,
) -> TradeRecord:
    return TradeRecord(
        trade_date=day,
        symbol=symbol,
        action=action,
        quantity=Decimal(quantity),
        price=Decimal(price),
        currency=currency,
        commission=Decimal(commission),
        realized_pnl=Decimal(realized_pnl) if realized_pnl is not None else None,
        sequence=sequence,
    )


@pytest.fixture
def sgd_table() -> FxRateTable:
    """Base-currency trades only, so every rate is 1."""
    return FxRateTable("SGD")


class TestBuys:
    def test_commission_is_capitalized(self, sgd_table):
        # Example A
        snapshot, warnings = fold_symbol(
            "AAPL", [_trade(TradeAction.BUY, "10", "100", commission="1")], sgd_table
        )

        assert snapshot.quantity == Decimal("10")
        assert snapshot.total_cost == Decimal("1001")
        assert snapshot.avg_cost == Decimal("100.1")
        assert snapshot.status == PositionStatus.OPEN
        assert warnings == []

    def test_buy_only_average_is_weighted_price(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.BUY, "30", "120", day=date(2026, 1, 6)),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.quantity == Decimal("40")
        assert snapshot.avg_cost == Decimal("115")
        assert snapshot.realized_pnl == Decimal("0")


class TestSells:
    def test_round_trip_closes_position(self, sgd_table):
        # Example B
        trades = [
            _trade(TradeAction.BUY, "10", "100", commission="1", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "10", "120", commission="1", day=date(2026, 1, 6)),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.quantity == Decimal("0")
        assert snapshot.total_cost == Decimal("0")
        assert snapshot.realized_pnl == Decimal("198")
        assert snapshot.avg_cost is None
        assert snapshot.status == PositionStatus.CLOSED

    def test_partial_sell_keeps_average_cost(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "4", "150", day=date(2026, 1, 6)),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.quantity == Decimal("6")
        assert snapshot.avg_cost == Decimal("100")
        assert snapshot.realized_pnl == Decimal("200")

    def test_oversell_is_clamped(self, sgd_table):
        # Example D
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "15", "110", day=date(2026, 1, 6)),
        ]
        snapshot, warnings = fold_symbol("AAPL", trades, sgd_table)

        (warning,) = warnings
        assert warning.requested == Decimal("15")
        assert warning.applied == Decimal("10")
        assert warning.discarded == Decimal("5")
        assert snapshot.quantity == Decimal("0")
        assert snapshot.realized_pnl == Decimal("100")
        assert snapshot.status == PositionStatus.CLOSED

    def test_sell_without_holding_changes_nothing(self, sgd_table):
        snapshot, warnings = fold_symbol(
            "AAPL", [_trade(TradeAction.SELL, "5", "110")], sgd_table
        )

        assert warnings[0].applied == Decimal("0")
        assert snapshot.quantity == Decimal("0")
        assert snapshot.realized_pnl == Decimal("0")

    def test_dust_quantity_counts_as_closed(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "1", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "0.99995", "100", day=date(2026, 1, 6)),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.status == PositionStatus.CLOSED
        assert snapshot.avg_cost is None


class TestReportedRealizedPnl:
    def test_reported_figure_replaces_running_total(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "5", "120", day=date(2026, 1, 6), realized_pnl="95"),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.realized_pnl == Decimal("95")
        assert snapshot.quantity == Decimal("5")
        assert snapshot.total_cost == Decimal("500")

    def test_later_computed_pnl_adds_to_reported_figure(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5)),
            _trade(TradeAction.SELL, "5", "120", day=date(2026, 1, 6), realized_pnl="95"),
            _trade(TradeAction.SELL, "5", "110", day=date(2026, 1, 7)),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, sgd_table)

        assert snapshot.realized_pnl == Decimal("145")


class TestBaseCurrency:
    def test_cost_converted_at_each_trade_date_rate(self):
        fx_table = resolve_fx_rates(
            [
                ForexTrade(date(2026, 1, 5), "USD.SGD", "USD", "SGD", Decimal("1.30")),
                ForexTrade(date(2026, 1, 6), "USD.SGD", "USD", "SGD", Decimal("1.40")),
            ],
            "SGD",
            {},
        )
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5), currency="USD"),
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 6), currency="USD"),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, fx_table)

        assert snapshot.total_cost_base == Decimal("2700")
        assert snapshot.avg_fx_rate == Decimal("1.35")
        assert not snapshot.uses_estimated_fx

    def test_realized_pnl_base_uses_sell_date_rate_for_proceeds(self):
        fx_table = resolve_fx_rates(
            [
                ForexTrade(date(2026, 1, 5), "USD.SGD", "USD", "SGD", Decimal("1.30")),
                ForexTrade(date(2026, 1, 6), "USD.SGD", "USD", "SGD", Decimal("1.40")),
            ],
            "SGD",
            {},
        )
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5), currency="USD"),
            _trade(TradeAction.SELL, "10", "100", day=date(2026, 1, 6), currency="USD"),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, fx_table)

        # Flat in USD, FX gain in SGD
        assert snapshot.realized_pnl == Decimal("0")
        assert snapshot.realized_pnl_base == Decimal("100")

    def test_default_rate_marks_position_estimated(self):
        fx_table = resolve_fx_rates([], "SGD", {"USD": Decimal("1.27")})
        snapshot, _ = fold_symbol(
            "AAPL", [_trade(TradeAction.BUY, "10", "100", currency="USD")], fx_table
        )

        assert snapshot.total_cost_base == Decimal("1270")
        assert snapshot.uses_estimated_fx

    def test_reported_pnl_converted_at_that_trade_date(self):
        fx_table = resolve_fx_rates(
            [ForexTrade(date(2026, 1, 6), "USD.SGD", "USD", "SGD", Decimal("1.40"))],
            "SGD",
            {"USD": Decimal("1.30")},
        )
        trades = [
            _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5), currency="USD"),
            _trade(
                TradeAction.SELL,
                "10",
                "110",
                day=date(2026, 1, 6),
                currency="USD",
                realized_pnl="100",
            ),
        ]
        snapshot, _ = fold_symbol("AAPL", trades, fx_table)

        assert snapshot.realized_pnl_base == Decimal("140")


class TestOrdering:
    def test_sorted_by_date_then_file_order(self):
        late = _trade(TradeAction.SELL, "5", "100", day=date(2026, 1, 6), sequence=1)
        early_second = _trade(TradeAction.BUY, "5", "100", day=date(2026, 1, 5), sequence=9)
        early_first = _trade(TradeAction.BUY, "5", "100", day=date(2026, 1, 5), sequence=3)

        assert sort_trades([late, early_second, early_first]) == [early_first, early_second, late]

    def test_input_order_does_not_matter(self, sgd_table):
        buy = _trade(TradeAction.BUY, "10", "100", day=date(2026, 1, 5))
        sell = _trade(TradeAction.SELL, "10", "120", day=date(2026, 1, 6))

        forward, _ = fold_symbol("AAPL", [buy, sell], sgd_table)
        backward, _ = fold_symbol("AAPL", [sell, buy], sgd_table)
        assert forward == backward

    def test_empty_trade_list_is_rejected(self, sgd_table):
        with pytest.raises(ValueError):
            fold_symbol("AAPL", [], sgd_table)


class TestReconstructPositions:
    def test_symbols_are_folded_independently(self, sgd_table):
        trades = [
            _trade(TradeAction.BUY, "10", "100", symbol="AAPL"),
            _trade(TradeAction.BUY, "5", "300", symbol="MSFT"),
            _trade(TradeAction.SELL, "10", "110", symbol="AAPL", day=date(2026, 1, 6)),
        ]
        result = reconstruct_positions(trades, sgd_table)

        assert set(result.positions) == {"AAPL", "MSFT"}
        assert [p.symbol for p in result.open_positions] == ["MSFT"]
        assert result.positions["AAPL"].realized_pnl == Decimal("100")
        assert result.total_realized_pnl_base == Decimal("100")

    def test_warnings_are_collected(self):
        fx_table = resolve_fx_rates([], "SGD", {"USD": Decimal("1.27")})
        trades = [
            _trade(TradeAction.BUY, "10", "100", currency="USD"),
            _trade(TradeAction.SELL, "20", "100", currency="USD", day=date(2026, 1, 6)),
        ]
        result = reconstruct_positions(trades, fx_table)

        assert len(result.clamp_warnings) == 1
        assert len(result.fx_warnings) == 2
