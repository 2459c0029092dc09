"""Insert-if-absent for rows carrying a unique ``identity_key``."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from activity_ledger.services.identity_keys import DedupResult

logger = logging.getLogger(__name__)


def insert_if_absent(db: Session, row) -> DedupResult:
    """Add ``row`` unless a row of its model with the same identity key exists.

    The lookup handles the common case; the unique constraint is what makes it
    safe when two imports race. A constraint violation only rolls back the
    savepoint, so the surrounding batch keeps going.
    """
    model = type(row)
    exists = db.query(model.id).filter(model.identity_key == row.identity_key).first()
    if exists:
        return DedupResult.SKIPPED

    try:
        with db.begin_nested():
            db.add(row)
    except IntegrityError:
        logger.debug(f"{model.__name__} {row.identity_key[:12]} inserted concurrently, skipping")
        return DedupResult.SKIPPED

    return DedupResult.NEW
