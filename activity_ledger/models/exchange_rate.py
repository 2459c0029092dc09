"""Exchange Rate model - resolved rate-to-base per currency and day."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from activity_ledger.database import Base


class ExchangeRate(Base):
    """Resolved exchange rate, rebuilt on every re-fold.

    ``provenance`` tells an observed (averaged statement conversions) rate from
    a configured default.
    """

    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint("currency", "base_currency", "date", name="uq_exchange_rate"),
        Index("idx_rates_currency_date", "currency", "date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    currency: Mapped[str] = mapped_column(String(3))
    base_currency: Mapped[str] = mapped_column(String(3))
    rate: Mapped[Decimal] = mapped_column(Numeric(20, 10))
    rate_date: Mapped[date] = mapped_column("date", Date)
    provenance: Mapped[str] = mapped_column(String(10))  # 'observed' / 'default'
    sample_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    def __repr__(self) -> str:
        return (
            f"<ExchangeRate({self.currency}/{self.base_currency}={self.rate} on {self.rate_date}, "
            f"{self.provenance})>"
        )
