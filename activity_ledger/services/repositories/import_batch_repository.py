"""ImportBatch data access layer."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from activity_ledger.models import ImportBatch

from .exceptions import NotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)


class ImportBatchRepository:
    """Import batch queries.

    Naming conventions:
    - find_* : Query that may return None
    - get_* : Query that raises NotFoundError if missing
    - create_* : Insert new record
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def find_by_id(self, batch_id: int) -> ImportBatch | None:
        """Find batch by primary key."""
        return self._db.query(ImportBatch).filter(ImportBatch.id == batch_id).first()

    def get_by_id(self, batch_id: int) -> ImportBatch:
        """Get batch by primary key.

        Raises:
            NotFoundError: If batch doesn't exist
        """
        batch = self.find_by_id(batch_id)
        if not batch:
            raise NotFoundError("ImportBatch", batch_id)
        return batch

    def find_recent(self, limit: int = 50) -> "Sequence[ImportBatch]":
        """Most recent batches first."""
        return (
            self._db.query(ImportBatch)
            .order_by(ImportBatch.created_at.desc(), ImportBatch.id.desc())
            .limit(limit)
            .all()
        )

    def create(self, filename: str, file_hash: str | None = None) -> ImportBatch:
        """Create an empty batch and flush to get its id."""
        batch = ImportBatch(filename=filename, file_hash=file_hash, errors=[])
        self._db.add(batch)
        self._db.flush()
        logger.debug(f"Created import batch {batch.id} for {filename}")
        return batch

    def delete(self, batch: ImportBatch) -> None:
        """Delete a batch; its trades, income and conversions cascade."""
        self._db.delete(batch)
        self._db.flush()
