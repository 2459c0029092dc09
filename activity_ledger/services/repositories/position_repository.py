"""Derived position and exchange rate tables.

Both tables are caches of a re-fold and are replaced wholesale, never patched.
"""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from activity_ledger.constants import PositionStatus
from activity_ledger.models import ExchangeRate, Position
from activity_ledger.services.ledger_types import FxObservation, PositionSnapshot

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)


class PositionRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def replace_all(self, snapshots: "Iterable[PositionSnapshot]") -> int:
        """Swap the positions table for a fresh reconstruction."""
        self._db.query(Position).delete()
        rows = [Position.from_snapshot(snapshot) for snapshot in snapshots]
        self._db.add_all(rows)
        self._db.flush()
        return len(rows)

    def find_all(self, include_closed: bool = False) -> "Sequence[Position]":
        query = self._db.query(Position)
        if not include_closed:
            query = query.filter(Position.status == PositionStatus.OPEN)
        return query.order_by(Position.symbol).all()


class ExchangeRateRepository:
    def __init__(self, db: Session) -> None:
        self._db = db

    def replace_all(self, base_currency: str, observations: "Iterable[FxObservation]") -> int:
        """Swap the resolved rate table for the rates used by the latest re-fold."""
        self._db.query(ExchangeRate).delete()
        rows = [
            ExchangeRate(
                currency=obs.currency,
                base_currency=base_currency,
                rate=obs.rate,
                rate_date=obs.date,
                provenance=obs.provenance,
                sample_count=obs.sample_count,
            )
            for obs in observations
        ]
        self._db.add_all(rows)
        self._db.flush()
        logger.debug(f"Stored {len(rows)} resolved exchange rates (base {base_currency})")
        return len(rows)

    def find_all(self, currency: str | None = None) -> "Sequence[ExchangeRate]":
        query = self._db.query(ExchangeRate)
        if currency:
            query = query.filter(ExchangeRate.currency == currency.upper())
        return query.order_by(ExchangeRate.rate_date, ExchangeRate.currency).all()
