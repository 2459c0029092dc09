"""Income model - dividends and interest from imported statements."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from activity_ledger.database import Base
from activity_ledger.services.ledger_types import IncomeRecord


class Income(Base):
    """A dividend, interest or other income line."""

    __tablename__ = "income"
    __table_args__ = (
        UniqueConstraint("identity_key", name="uq_income_identity_key"),
        Index("idx_income_symbol_date", "symbol", "date"),
        Index("idx_income_batch", "batch_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("import_batches.id", ondelete="CASCADE"))
    identity_key: Mapped[str] = mapped_column(String(64))

    income_date: Mapped[date] = mapped_column("date", Date)
    symbol: Mapped[str] = mapped_column(String(50))  # 'CASH' when not tied to a security
    description: Mapped[str | None] = mapped_column(Text)
    income_type: Mapped[str] = mapped_column(String(20))  # 'DIVIDEND', 'INTEREST', 'OTHER'
    amount: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    currency: Mapped[str] = mapped_column(String(10), default="USD")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    # Relationships
    batch: Mapped["ImportBatch"] = relationship(back_populates="income")

    @classmethod
    def from_record(cls, record: IncomeRecord, batch_id: int, identity_key: str) -> "Income":
        return cls(
            batch_id=batch_id,
            identity_key=identity_key,
            income_date=record.date,
            symbol=record.symbol,
            description=record.description or None,
            income_type=record.income_type,
            amount=record.amount,
            currency=record.currency,
        )

    def __repr__(self) -> str:
        return (
            f"<Income(id={self.id}, {self.income_type} {self.symbol} {self.amount} "
            f"on {self.income_date})>"
        )
