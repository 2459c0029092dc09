"""Statement import orchestration.

Import is parse -> normalize -> keyed insert -> full re-fold. Positions and
resolved rates are never patched incrementally: every change to the stored
trades (import, batch delete, trade delete) rebuilds both derived tables from
everything that is left.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from activity_ledger.config import settings
from activity_ledger.services.fx_rate_resolver import (
    FxRateTable,
    default_rates_from_settings,
    resolve_fx_rates,
)
from activity_ledger.services.identity_keys import compute_file_hash
from activity_ledger.services.ledger_types import ReconstructionResult
from activity_ledger.services.position_engine import reconstruct_positions
from activity_ledger.services.record_normalizer import load_statement
from activity_ledger.services.repositories import (
    ExchangeRateRepository,
    ForexConversionRepository,
    ImportBatchRepository,
    IncomeRepository,
    PositionRepository,
    TradeRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Outcome of importing one statement."""

    batch_id: int
    filename: str
    statement_start: date | None
    statement_end: date | None
    trades_inserted: int = 0
    trades_skipped: int = 0
    income_inserted: int = 0
    income_skipped: int = 0
    forex_inserted: int = 0
    forex_skipped: int = 0
    open_positions: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _warning_messages(result: ReconstructionResult) -> list[str]:
    return [str(w) for w in result.clamp_warnings] + [str(w) for w in result.fx_warnings]


class StatementImportService:
    """Imports activity statements and keeps the derived tables in step.

    Example usage:
        service = StatementImportService(db)
        summary = service.import_statement("U123_2026.csv", content)
    """

    def __init__(
        self,
        db: Session,
        base_currency: str | None = None,
        default_rates: Mapping[str, Decimal] | None = None,
    ) -> None:
        self.db = db
        self.base_currency = base_currency or settings.base_currency
        self.default_rates = (
            dict(default_rates) if default_rates is not None else default_rates_from_settings()
        )

        self.batch_repo = ImportBatchRepository(db)
        self.trade_repo = TradeRepository(db)
        self.income_repo = IncomeRepository(db)
        self.forex_repo = ForexConversionRepository(db)
        self.position_repo = PositionRepository(db)
        self.rate_repo = ExchangeRateRepository(db)

    def import_statement(self, filename: str, content: bytes) -> ImportSummary:
        """Import a statement file.

        Re-importing a file, or one that overlaps an earlier file, only adds
        records whose identity key is not stored yet.

        Raises:
            FatalParseError: If the file is not a readable statement; nothing
                is stored in that case
        """
        statement = load_statement(content)

        stats = {
            "inserted": 0,
            "skipped": 0,
            "income_inserted": 0,
            "income_skipped": 0,
            "forex_inserted": 0,
            "forex_skipped": 0,
        }

        try:
            batch = self.batch_repo.create(filename, compute_file_hash(content))

            for trade in statement.trades:
                self.trade_repo.insert_if_absent(batch.id, trade).update_stats(stats)
            for income in statement.income:
                self.income_repo.insert_if_absent(batch.id, income).update_stats(
                    stats, prefix="income_"
                )
            for conversion in statement.forex_trades:
                self.forex_repo.insert_if_absent(batch.id, conversion).update_stats(
                    stats, prefix="forex_"
                )

            errors = [str(e) for e in statement.errors]
            batch.statement_start = statement.statement_start
            batch.statement_end = statement.statement_end
            batch.trade_count = len(statement.trades)
            batch.income_count = len(statement.income)
            batch.trades_inserted = stats["inserted"]
            batch.trades_skipped = stats["skipped"]
            batch.income_inserted = stats["income_inserted"]
            batch.income_skipped = stats["income_skipped"]
            batch.errors = errors

            result = self._refold()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Imported {filename} as batch {batch.id}: "
            f"{stats['inserted']} trades ({stats['skipped']} duplicates), "
            f"{stats['income_inserted']} income ({stats['income_skipped']} duplicates), "
            f"{stats['forex_inserted']} conversions, {len(errors)} row errors"
        )

        return ImportSummary(
            batch_id=batch.id,
            filename=filename,
            statement_start=statement.statement_start,
            statement_end=statement.statement_end,
            trades_inserted=stats["inserted"],
            trades_skipped=stats["skipped"],
            income_inserted=stats["income_inserted"],
            income_skipped=stats["income_skipped"],
            forex_inserted=stats["forex_inserted"],
            forex_skipped=stats["forex_skipped"],
            open_positions=len(result.open_positions),
            errors=errors,
            warnings=_warning_messages(result),
        )

    def delete_batch(self, batch_id: int) -> dict:
        """Delete a batch with everything it introduced, then re-fold.

        Raises:
            NotFoundError: If the batch doesn't exist
        """
        batch = self.batch_repo.get_by_id(batch_id)
        counts = {
            "trades_deleted": len(batch.trades),
            "income_deleted": len(batch.income),
            "forex_deleted": len(batch.forex_conversions),
        }

        try:
            self.batch_repo.delete(batch)
            result = self._refold()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted import batch {batch_id}: {counts}")
        return {**counts, "open_positions": len(result.open_positions)}

    def delete_trade(self, trade_id: int) -> ReconstructionResult:
        """Delete a single trade, then re-fold.

        Raises:
            NotFoundError: If the trade doesn't exist
        """
        trade = self.trade_repo.get_by_id(trade_id)
        label = f"{trade.symbol} on {trade.trade_date}"
        try:
            self.trade_repo.delete(trade)
            result = self._refold()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Deleted trade {trade_id} ({label})")
        return result

    def recalculate_positions(self) -> ReconstructionResult:
        """Rebuild positions and resolved rates from the stored trades."""
        try:
            result = self._refold()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return result

    def current_fx_table(self) -> FxRateTable:
        """FX table built from every stored conversion."""
        return resolve_fx_rates(
            self.forex_repo.find_all_records(), self.base_currency, self.default_rates
        )

    def _refold(self) -> ReconstructionResult:
        trades = self.trade_repo.to_records(self.trade_repo.find_all_ordered())
        required = sorted({(t.currency, t.trade_date) for t in trades})

        fx_table = resolve_fx_rates(
            self.forex_repo.find_all_records(),
            self.base_currency,
            self.default_rates,
            required=required,
        )
        result = reconstruct_positions(trades, fx_table)

        self.position_repo.replace_all(result.positions.values())
        self.rate_repo.replace_all(self.base_currency, fx_table.observations)
        return result
