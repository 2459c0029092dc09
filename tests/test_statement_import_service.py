"""Tests for statement import, re-import and deletion against a real database."""

from datetime import date
from decimal import Decimal

import pytest

from activity_ledger.constants import FxProvenance, PositionStatus
from activity_ledger.models import ExchangeRate, ForexConversion, ImportBatch, Income, Trade
from activity_ledger.services.errors import FatalParseError
from activity_ledger.services.repositories import NotFoundError, PositionRepository


def _positions(db, include_closed: bool = True) -> dict:
    return {
        p.symbol: p for p in PositionRepository(db).find_all(include_closed=include_closed)
    }


def _position_state(db) -> list[tuple]:
    """Comparable view of the positions table."""
    return [
        (
            p.symbol,
            p.status,
            float(p.quantity),
            float(p.total_cost),
            float(p.realized_pnl),
            float(p.total_cost_base),
            float(p.realized_pnl_base),
        )
        for p in PositionRepository(db).find_all(include_closed=True)
    ]


class TestImportStatement:
    def test_first_import_stores_everything(self, db, service, jan_statement):
        summary = service.import_statement("jan.csv", jan_statement)

        assert summary.trades_inserted == 4
        assert summary.trades_skipped == 0
        assert summary.income_inserted == 2
        assert summary.forex_inserted == 3
        assert summary.open_positions == 2
        assert summary.errors == []
        assert summary.statement_start == date(2026, 1, 1)
        assert summary.statement_end == date(2026, 1, 31)

        assert db.query(Trade).count() == 4
        assert db.query(Income).count() == 2
        assert db.query(ForexConversion).count() == 3

    def test_batch_records_counts_and_period(self, db, service, jan_statement):
        summary = service.import_statement("jan.csv", jan_statement)

        batch = db.query(ImportBatch).filter(ImportBatch.id == summary.batch_id).one()
        assert batch.filename == "jan.csv"
        assert len(batch.file_hash) == 64
        assert batch.trade_count == 4
        assert batch.income_count == 2
        assert batch.trades_inserted == 4
        assert batch.statement_start == date(2026, 1, 1)
        assert batch.errors == []

    def test_positions_reconstructed_after_import(self, db, service, jan_statement):
        service.import_statement("jan.csv", jan_statement)
        positions = _positions(db)

        aapl = positions["AAPL"]
        assert aapl.status == PositionStatus.OPEN
        assert aapl.quantity == Decimal("15")
        assert float(aapl.total_cost) == pytest.approx(1651.5)
        assert float(aapl.avg_cost) == pytest.approx(110.1)
        assert float(aapl.realized_pnl) == pytest.approx(98.5)
        # 1001 @ 1.30 + 1201 @ 1.27, a quarter relieved at average
        assert float(aapl.total_cost_base) == pytest.approx(2119.9275)
        assert float(aapl.realized_pnl_base) == pytest.approx(98.5 * 1.27)
        assert aapl.uses_estimated_fx is True
        assert aapl.trade_count == 3

        hk = positions["700"]
        hkd_rate = (1 / 6.0 + 1 / 6.1) / 2
        assert hk.currency == "HKD"
        assert float(hk.total_cost) == pytest.approx(30020)
        assert float(hk.total_cost_base) == pytest.approx(30020 * hkd_rate, rel=1e-6)
        assert hk.uses_estimated_fx is False

    def test_fallback_rates_are_reported(self, db, service, jan_statement):
        summary = service.import_statement("jan.csv", jan_statement)

        assert len(summary.warnings) == 2
        assert all("USD" in w for w in summary.warnings)

        rates = {
            (r.currency, r.rate_date): r.provenance for r in db.query(ExchangeRate).all()
        }
        assert rates == {
            ("USD", date(2026, 1, 5)): FxProvenance.OBSERVED,
            ("USD", date(2026, 1, 12)): FxProvenance.DEFAULT,
            ("USD", date(2026, 1, 20)): FxProvenance.DEFAULT,
            ("HKD", date(2026, 1, 15)): FxProvenance.OBSERVED,
        }

    def test_reimport_is_idempotent(self, db, service, jan_statement):
        service.import_statement("jan.csv", jan_statement)
        before = _position_state(db)

        summary = service.import_statement("jan-again.csv", jan_statement)

        assert summary.trades_inserted == 0
        assert summary.trades_skipped == 4
        assert summary.income_skipped == 2
        assert summary.forex_skipped == 3
        assert db.query(Trade).count() == 4
        assert db.query(ImportBatch).count() == 2
        assert _position_state(db) == before

    def test_overlapping_statement_adds_only_new_trades(
        self, db, service, jan_statement, feb_statement
    ):
        service.import_statement("jan.csv", jan_statement)
        summary = service.import_statement("feb.csv", feb_statement)

        assert summary.trades_inserted == 1
        assert summary.trades_skipped == 1
        assert summary.forex_inserted == 1
        assert len(summary.errors) == 2
        assert summary.open_positions == 1

        aapl = _positions(db)["AAPL"]
        assert aapl.status == PositionStatus.CLOSED
        assert aapl.avg_cost is None
        assert float(aapl.realized_pnl) == pytest.approx(546)
        assert float(aapl.realized_pnl_base) == pytest.approx(838.8175)

    def test_unreadable_file_stores_nothing(self, db, service):
        with pytest.raises(FatalParseError):
            service.import_statement("empty.csv", b"")

        assert db.query(ImportBatch).count() == 0


class TestDeleteBatch:
    def test_deleting_later_batch_restores_earlier_state(
        self, db, service, jan_statement, feb_statement
    ):
        service.import_statement("jan.csv", jan_statement)
        jan_only = _position_state(db)

        service.import_statement("feb.csv", feb_statement)
        feb_batch = db.query(ImportBatch).filter(ImportBatch.filename == "feb.csv").one()
        counts = service.delete_batch(feb_batch.id)

        assert counts["trades_deleted"] == 1
        assert counts["forex_deleted"] == 1
        assert _position_state(db) == jan_only
        assert db.query(Trade).count() == 4

    def test_skipped_duplicates_stay_with_original_batch(
        self, db, service, jan_statement, feb_statement
    ):
        jan = service.import_statement("jan.csv", jan_statement)
        service.import_statement("feb.csv", feb_statement)

        counts = service.delete_batch(jan.batch_id)

        assert counts == {
            "trades_deleted": 4,
            "income_deleted": 2,
            "forex_deleted": 3,
            "open_positions": 0,
        }
        # Only the February sell is left, with nothing to sell from
        assert db.query(Trade).count() == 1
        assert db.query(Income).count() == 0
        positions = _positions(db)
        assert set(positions) == {"AAPL"}
        assert positions["AAPL"].status == PositionStatus.CLOSED
        assert positions["AAPL"].realized_pnl == Decimal("0")

    def test_missing_batch_raises(self, service):
        with pytest.raises(NotFoundError):
            service.delete_batch(999)


class TestDeleteTrade:
    def test_deleting_a_sell_restores_quantity(self, db, service, jan_statement):
        service.import_statement("jan.csv", jan_statement)
        sell = db.query(Trade).filter(Trade.action == "SELL").one()

        result = service.delete_trade(sell.id)

        assert result.positions["AAPL"].quantity == Decimal("20")
        assert _positions(db)["AAPL"].quantity == Decimal("20")
        assert db.query(Trade).count() == 3

    def test_missing_trade_raises(self, service):
        with pytest.raises(NotFoundError):
            service.delete_trade(999)


class TestRecalculate:
    def test_recalculate_matches_import_result(self, db, service, jan_statement):
        service.import_statement("jan.csv", jan_statement)
        before = _position_state(db)

        result = service.recalculate_positions()

        assert len(result.positions) == 2
        assert _position_state(db) == before

    def test_recalculate_on_empty_ledger(self, db, service):
        result = service.recalculate_positions()

        assert result.positions == {}
        assert _positions(db) == {}

    def test_current_fx_table_uses_stored_conversions(self, service, jan_statement):
        service.import_statement("jan.csv", jan_statement)

        table = service.current_fx_table()
        assert table.latest_rate("USD").rate == Decimal("1.3")
        assert table.latest_rate("USD").date == date(2026, 1, 5)
