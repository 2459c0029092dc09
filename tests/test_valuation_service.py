"""Tests for live valuation of reconstructed positions."""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from activity_ledger.constants import PositionStatus
from activity_ledger.models import Position
from activity_ledger.services.fx_rate_resolver import FxRateTable
from activity_ledger.services.ledger_types import FxObservation
from activity_ledger.services.quote_provider import Quote, YFinanceQuoteProvider, yahoo_symbol
from activity_ledger.services.valuation_service import PortfolioValuationService


def _position(symbol: str, status: str = PositionStatus.OPEN, **overrides) -> Position:
    fields = {
        "symbol": symbol,
        "currency": "USD",
        "status": status,
        "quantity": Decimal("15"),
        "avg_cost": Decimal("110"),
        "total_cost": Decimal("1650"),
        "realized_pnl": Decimal("100"),
        "total_cost_base": Decimal("2100"),
        "realized_pnl_base": Decimal("127"),
        "avg_fx_rate": Decimal("1.2727"),
        "uses_estimated_fx": False,
        "trade_count": 3,
    }
    fields.update(overrides)
    return Position(**fields)


@pytest.fixture
def fx_table() -> FxRateTable:
    observed = {
        ("USD", date(2026, 1, 5)): FxObservation("USD", date(2026, 1, 5), Decimal("1.25")),
        ("USD", date(2026, 2, 3)): FxObservation("USD", date(2026, 2, 3), Decimal("1.3")),
    }
    return FxRateTable("SGD", observed, {"USD": Decimal("1.27")})


@pytest.fixture
def quotes():
    provider = MagicMock()
    provider.get_quote.return_value = Quote(
        symbol="AAPL", price=Decimal("150"), change=Decimal("2"), currency="USD"
    )
    return provider


class TestValuePosition:
    def test_market_values_use_latest_rate(self, quotes, fx_table):
        value = PortfolioValuationService(quotes, fx_table).value_position(_position("AAPL"))

        assert value.current_price == Decimal("150")
        assert value.market_value == Decimal("2250")
        assert value.unrealized_pnl == Decimal("600")
        assert float(value.unrealized_pnl_pct) == pytest.approx(36.3636, rel=1e-4)
        assert value.day_change == Decimal("30")
        assert value.fx_rate == Decimal("1.3")
        assert value.market_value_base == Decimal("2925")
        # Cost stays at historical rates
        assert value.unrealized_pnl_base == Decimal("825")
        quotes.get_quote.assert_called_once_with("AAPL", "USD")

    def test_missing_quote_leaves_market_fields_empty(self, quotes, fx_table):
        quotes.get_quote.return_value = None

        value = PortfolioValuationService(quotes, fx_table).value_position(_position("AAPL"))

        assert value.current_price is None
        assert value.market_value is None
        assert value.market_value_base is None
        assert value.total_cost_base == Decimal("2100")

    def test_closed_position_is_not_quoted(self, quotes, fx_table):
        value = PortfolioValuationService(quotes, fx_table).value_position(
            _position("MSFT", status=PositionStatus.CLOSED, quantity=Decimal("0"))
        )

        assert value.market_value is None
        quotes.get_quote.assert_not_called()


class TestSummarize:
    def test_totals_cover_open_positions(self, quotes, fx_table):
        positions = [
            _position("AAPL"),
            _position(
                "MSFT",
                status=PositionStatus.CLOSED,
                quantity=Decimal("0"),
                total_cost=Decimal("0"),
                total_cost_base=Decimal("0"),
                realized_pnl_base=Decimal("50"),
            ),
        ]

        summary = PortfolioValuationService(quotes, fx_table).summarize(positions)

        assert summary.base_currency == "SGD"
        assert summary.total_cost == Decimal("2100")
        assert summary.total_market_value == Decimal("2925")
        assert summary.total_unrealized_pnl == Decimal("825")
        assert summary.total_realized_pnl == Decimal("177")
        assert summary.day_pnl == Decimal("39")
        assert len(summary.positions) == 2

    def test_no_quotes_gives_cost_only_summary(self, quotes, fx_table):
        quotes.get_quote.return_value = None

        summary = PortfolioValuationService(quotes, fx_table).summarize([_position("AAPL")])

        assert summary.total_cost == Decimal("2100")
        assert summary.total_market_value is None
        assert summary.total_unrealized_pnl is None
        assert summary.day_pnl is None


class TestYFinanceQuoteProvider:
    @patch("activity_ledger.services.quote_provider.yf.Ticker")
    def test_reads_price_and_change(self, mock_ticker):
        mock_ticker.return_value.info = {
            "currentPrice": 150.25,
            "regularMarketChange": -1.5,
            "regularMarketChangePercent": -0.99,
            "currency": "USD",
        }

        quote = YFinanceQuoteProvider().get_quote("AAPL", "USD")

        assert quote.price == Decimal("150.25")
        assert quote.change == Decimal("-1.5")
        assert quote.currency == "USD"
        mock_ticker.assert_called_once_with("AAPL")

    @patch("activity_ledger.services.quote_provider.yf.Ticker")
    def test_falls_back_to_previous_close(self, mock_ticker):
        mock_ticker.return_value.info = {"previousClose": 99.5}

        quote = YFinanceQuoteProvider().get_quote("AAPL")

        assert quote.price == Decimal("99.5")
        assert quote.change is None

    @patch("activity_ledger.services.quote_provider.yf.Ticker")
    def test_errors_return_none(self, mock_ticker):
        mock_ticker.side_effect = Exception("network down")
        assert YFinanceQuoteProvider().get_quote("AAPL") is None

    @patch("activity_ledger.services.quote_provider.yf.Ticker")
    def test_no_price_returns_none(self, mock_ticker):
        mock_ticker.return_value.info = {}
        assert YFinanceQuoteProvider().get_quote("AAPL") is None

    def test_yahoo_symbol_suffixes(self):
        assert yahoo_symbol("AAPL", "USD") == "AAPL"
        assert yahoo_symbol("700", "HKD") == "0700.HK"
        assert yahoo_symbol("D05", "SGD") == "D05.SI"
        assert yahoo_symbol("VOD.L", "GBP") == "VOD.L"
