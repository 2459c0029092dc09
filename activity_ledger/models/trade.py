"""Trade model - executed security trades from imported statements."""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, ForeignKey, Index, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from activity_ledger.database import Base
from activity_ledger.services.ledger_types import TradeRecord


class Trade(Base):
    """A normalized trade. Uniqueness of ``identity_key`` is the dedup guarantee."""

    __tablename__ = "trades"
    __table_args__ = (
        UniqueConstraint("identity_key", name="uq_trades_identity_key"),
        Index("idx_trades_symbol_date", "symbol", "trade_date"),
        Index("idx_trades_batch", "batch_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("import_batches.id", ondelete="CASCADE"))
    identity_key: Mapped[str] = mapped_column(String(64))

    trade_date: Mapped[date] = mapped_column(Date)
    settle_date: Mapped[date | None] = mapped_column(Date)
    symbol: Mapped[str] = mapped_column(String(50))
    description: Mapped[str | None] = mapped_column(Text)
    asset_class: Mapped[str | None] = mapped_column(String(50))
    action: Mapped[str] = mapped_column(String(4))  # 'BUY' / 'SELL'
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    price: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    currency: Mapped[str] = mapped_column(String(10), default="USD")
    fx_rate: Mapped[Decimal | None] = mapped_column(Numeric(20, 10))  # As reported, advisory
    proceeds: Mapped[Decimal | None] = mapped_column(Numeric(20, 4))
    cost_basis: Mapped[Decimal | None] = mapped_column(Numeric(20, 4))
    realized_pnl: Mapped[Decimal | None] = mapped_column(Numeric(20, 4))
    commission: Mapped[Decimal] = mapped_column(Numeric(20, 4), default=Decimal("0"))
    fees: Mapped[Decimal] = mapped_column(Numeric(20, 4), default=Decimal("0"))
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    # Relationships
    batch: Mapped["ImportBatch"] = relationship(back_populates="trades")

    @classmethod
    def from_record(cls, record: TradeRecord, batch_id: int, identity_key: str) -> "Trade":
        return cls(
            batch_id=batch_id,
            identity_key=identity_key,
            trade_date=record.trade_date,
            settle_date=record.settle_date,
            symbol=record.symbol,
            description=record.description or None,
            asset_class=record.asset_class,
            action=record.action,
            quantity=record.quantity,
            price=record.price,
            currency=record.currency,
            fx_rate=record.fx_rate,
            proceeds=record.proceeds,
            cost_basis=record.cost_basis,
            realized_pnl=record.realized_pnl,
            commission=record.commission,
            fees=record.fees,
        )

    def to_record(self) -> TradeRecord:
        """Rebuild the value object; row id stands in for file order."""
        return TradeRecord(
            trade_date=self.trade_date,
            settle_date=self.settle_date,
            symbol=self.symbol,
            description=self.description or "",
            asset_class=self.asset_class or "",
            action=self.action,
            quantity=Decimal(self.quantity),
            price=Decimal(self.price),
            currency=self.currency,
            fx_rate=self.fx_rate,
            proceeds=self.proceeds,
            cost_basis=self.cost_basis,
            realized_pnl=self.realized_pnl,
            commission=Decimal(self.commission or 0),
            fees=Decimal(self.fees or 0),
            sequence=self.id,
        )

    def __repr__(self) -> str:
        return (
            f"<Trade(id={self.id}, {self.action} {self.quantity} {self.symbol} "
            f"@ {self.price} on {self.trade_date})>"
        )
