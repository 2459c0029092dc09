"""Identity keys for import deduplication.

Every stored trade, income row and forex observation carries a SHA256 key
computed from its identifying fields. The database enforces uniqueness of
the key, which makes re-importing the same statement a no-op:

    result = trade_repo.insert_if_absent(batch, record)
    result.update_stats(stats)  # "inserted" or "skipped"
"""

import hashlib
from datetime import date
from decimal import Decimal
from enum import Enum

from activity_ledger.services.ledger_types import ForexTrade, IncomeRecord, TradeRecord


class DedupResult(Enum):
    """Result of an insert-if-absent attempt."""

    NEW = "new"  # No row with this key, inserted
    SKIPPED = "skipped"  # Key already present, nothing written

    def update_stats(self, stats: dict, prefix: str = "") -> None:
        """Update import statistics based on this result.

        Args:
            stats: Dictionary with '<prefix>inserted' and '<prefix>skipped' keys
            prefix: Key prefix, e.g. "income_"
        """
        if self == DedupResult.NEW:
            stats[f"{prefix}inserted"] += 1
        else:
            stats[f"{prefix}skipped"] += 1


def _digest(components: list[str]) -> str:
    content = "|".join(components)
    return hashlib.sha256(content.encode()).hexdigest()


def _num(value: Decimal) -> str:
    return f"{value:.8f}"


def compute_trade_key(
    trade_date: date,
    symbol: str,
    action: str,
    quantity: Decimal,
    price: Decimal,
    currency: str,
) -> str:
    """Compute the identity key of a trade.

    Time of day is not part of the key, so two identical fills on the same
    day collapse into one row.

    Returns:
        64-character SHA256 hex digest
    """
    return _digest(
        [
            trade_date.isoformat(),
            symbol.upper(),
            action,
            _num(quantity),
            _num(price),
            currency.upper(),
        ]
    )


def trade_key(record: TradeRecord) -> str:
    return compute_trade_key(
        trade_date=record.trade_date,
        symbol=record.symbol,
        action=record.action,
        quantity=record.quantity,
        price=record.price,
        currency=record.currency,
    )


def income_key(record: IncomeRecord) -> str:
    """Identity key of an income row (date, symbol, type, amount, currency, description)."""
    return _digest(
        [
            record.date.isoformat(),
            record.symbol.upper(),
            record.income_type,
            _num(record.amount),
            record.currency.upper(),
            record.description.strip(),
        ]
    )


def forex_key(record: ForexTrade) -> str:
    """Identity key of a conversion (date, pair, quantity, price)."""
    return _digest(
        [
            record.trade_date.isoformat(),
            record.pair,
            _num(record.quantity),
            _num(record.price),
        ]
    )


def compute_file_hash(content: bytes) -> str:
    """SHA256 of an uploaded file, recorded on its import batch."""
    return hashlib.sha256(content).hexdigest()
