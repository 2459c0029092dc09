"""SQLAlchemy ORM models."""

from activity_ledger.models.exchange_rate import ExchangeRate
from activity_ledger.models.forex_conversion import ForexConversion
from activity_ledger.models.import_batch import ImportBatch
from activity_ledger.models.income import Income
from activity_ledger.models.position import Position
from activity_ledger.models.trade import Trade

__all__ = [
    "ExchangeRate",
    "ForexConversion",
    "ImportBatch",
    "Income",
    "Position",
    "Trade",
]
