"""Income and forex conversion data access layer."""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from activity_ledger.models import ForexConversion, Income
from activity_ledger.services.identity_keys import DedupResult, forex_key, income_key
from activity_ledger.services.ledger_types import ForexTrade, IncomeRecord

from .keyed_insert import insert_if_absent

if TYPE_CHECKING:
    from collections.abc import Sequence


class IncomeRepository:
    """Income queries and keyed inserts."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def insert_if_absent(self, batch_id: int, record: IncomeRecord) -> DedupResult:
        return insert_if_absent(self._db, Income.from_record(record, batch_id, income_key(record)))

    def find_all(
        self, symbol: str | None = None, income_type: str | None = None
    ) -> "Sequence[Income]":
        """Income rows, newest first."""
        query = self._db.query(Income)
        if symbol:
            query = query.filter(Income.symbol == symbol.upper())
        if income_type:
            query = query.filter(Income.income_type == income_type.upper())
        return query.order_by(Income.income_date.desc(), Income.id.desc()).all()


class ForexConversionRepository:
    """Forex conversion queries and keyed inserts."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def insert_if_absent(self, batch_id: int, record: ForexTrade) -> DedupResult:
        return insert_if_absent(
            self._db, ForexConversion.from_record(record, batch_id, forex_key(record))
        )

    def find_all_records(self) -> list[ForexTrade]:
        """Every stored conversion as a ``ForexTrade``, in date order."""
        rows = (
            self._db.query(ForexConversion)
            .order_by(ForexConversion.trade_date, ForexConversion.id)
            .all()
        )
        return [row.to_record() for row in rows]
