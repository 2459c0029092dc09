"""ImportBatch model - one uploaded activity statement."""

from datetime import date, datetime

from sqlalchemy import JSON, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from activity_ledger.database import Base


class ImportBatch(Base):
    """Provenance and counts of a single statement import.

    Every trade, income row and forex conversion points back at the batch that
    first introduced it. Deleting a batch deletes exactly those rows; rows a
    re-upload skipped as duplicates stay with their original batch.
    """

    __tablename__ = "import_batches"
    __table_args__ = (
        Index("idx_import_batches_created", "created_at"),
        Index("idx_import_batches_file_hash", "file_hash"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    filename: Mapped[str] = mapped_column(String(255))
    file_hash: Mapped[str | None] = mapped_column(String(64))  # SHA256 of the upload

    # Statement period as printed in the file (or derived from record dates)
    statement_start: Mapped[date | None] = mapped_column(Date)
    statement_end: Mapped[date | None] = mapped_column(Date)

    # Records found in the file vs. actually written
    trade_count: Mapped[int] = mapped_column(Integer, default=0)
    income_count: Mapped[int] = mapped_column(Integer, default=0)
    trades_inserted: Mapped[int] = mapped_column(Integer, default=0)
    trades_skipped: Mapped[int] = mapped_column(Integer, default=0)
    income_inserted: Mapped[int] = mapped_column(Integer, default=0)
    income_skipped: Mapped[int] = mapped_column(Integer, default=0)

    # Non-fatal row errors, as strings
    errors: Mapped[list | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    # Relationships
    trades: Mapped[list["Trade"]] = relationship(
        back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )
    income: Mapped[list["Income"]] = relationship(
        back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )
    forex_conversions: Mapped[list["ForexConversion"]] = relationship(
        back_populates="batch", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<ImportBatch(id={self.id}, filename='{self.filename}', "
            f"period={self.statement_start} to {self.statement_end})>"
        )
