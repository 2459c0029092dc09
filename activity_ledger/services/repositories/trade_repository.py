"""Trade data access layer."""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from activity_ledger.models import Trade
from activity_ledger.services.identity_keys import DedupResult, trade_key
from activity_ledger.services.ledger_types import TradeRecord

from .exceptions import NotFoundError
from .keyed_insert import insert_if_absent

if TYPE_CHECKING:
    from collections.abc import Sequence


class TradeRepository:
    """Trade queries and keyed inserts."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def insert_if_absent(self, batch_id: int, record: TradeRecord) -> DedupResult:
        """Store a trade unless one with the same identity key exists."""
        return insert_if_absent(self._db, Trade.from_record(record, batch_id, trade_key(record)))

    def find_by_id(self, trade_id: int) -> Trade | None:
        return self._db.query(Trade).filter(Trade.id == trade_id).first()

    def get_by_id(self, trade_id: int) -> Trade:
        """Get trade by primary key.

        Raises:
            NotFoundError: If trade doesn't exist
        """
        trade = self.find_by_id(trade_id)
        if not trade:
            raise NotFoundError("Trade", trade_id)
        return trade

    def find_all_ordered(self) -> "Sequence[Trade]":
        """Every trade in fold order: trade date, then insertion order."""
        return self._db.query(Trade).order_by(Trade.trade_date, Trade.id).all()

    def find_page(
        self, symbol: str | None = None, skip: int = 0, limit: int = 100
    ) -> tuple["Sequence[Trade]", int]:
        """Newest trades first, optionally for one symbol.

        Returns:
            Tuple of (trades on this page, total matching)
        """
        query = self._db.query(Trade)
        if symbol:
            query = query.filter(Trade.symbol == symbol.upper())
        total = query.count()
        trades = (
            query.order_by(Trade.trade_date.desc(), Trade.id.desc()).offset(skip).limit(limit).all()
        )
        return trades, total

    def to_records(self, trades: "Sequence[Trade]") -> list[TradeRecord]:
        return [trade.to_record() for trade in trades]

    def delete(self, trade: Trade) -> None:
        self._db.delete(trade)
        self._db.flush()
