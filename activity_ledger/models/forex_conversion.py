"""ForexConversion model - currency conversions embedded in statement trades."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from activity_ledger.database import Base
from activity_ledger.services.ledger_types import ForexTrade


class ForexConversion(Base):
    """A conversion such as SGD.HKD, kept as raw input to the FX resolver.

    Rates are re-derived from the surviving conversions on every re-fold, so
    deleting a batch also withdraws the rates it contributed.
    """

    __tablename__ = "forex_conversions"
    __table_args__ = (
        UniqueConstraint("identity_key", name="uq_forex_conversions_identity_key"),
        Index("idx_forex_conversions_date", "trade_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("import_batches.id", ondelete="CASCADE"))
    identity_key: Mapped[str] = mapped_column(String(64))

    trade_date: Mapped[date] = mapped_column(Date)
    pair: Mapped[str] = mapped_column(String(7))  # 'SGD.HKD'
    base_leg: Mapped[str] = mapped_column(String(3))
    quote_leg: Mapped[str] = mapped_column(String(3))
    price: Mapped[Decimal] = mapped_column(Numeric(20, 10))
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    # Relationships
    batch: Mapped["ImportBatch"] = relationship(back_populates="forex_conversions")

    @classmethod
    def from_record(
        cls, record: ForexTrade, batch_id: int, identity_key: str
    ) -> "ForexConversion":
        return cls(
            batch_id=batch_id,
            identity_key=identity_key,
            trade_date=record.trade_date,
            pair=record.pair,
            base_leg=record.base_leg,
            quote_leg=record.quote_leg,
            price=record.price,
            quantity=record.quantity,
        )

    def to_record(self) -> ForexTrade:
        return ForexTrade(
            trade_date=self.trade_date,
            pair=self.pair,
            base_leg=self.base_leg,
            quote_leg=self.quote_leg,
            price=Decimal(self.price),
            quantity=Decimal(self.quantity),
            sequence=self.id,
        )

    def __repr__(self) -> str:
        return f"<ForexConversion(id={self.id}, {self.pair} @ {self.price} on {self.trade_date})>"
