"""Position model - derived per-symbol snapshot, replaced on every re-fold."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from activity_ledger.database import Base
from activity_ledger.services.ledger_types import PositionSnapshot


class Position(Base):
    """Cached reconstruction output. Never edited directly; trades are the source."""

    __tablename__ = "positions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    symbol: Mapped[str] = mapped_column(String(50), unique=True)
    currency: Mapped[str] = mapped_column(String(10))
    status: Mapped[str] = mapped_column(String(6))  # 'OPEN' / 'CLOSED'
    quantity: Mapped[Decimal] = mapped_column(Numeric(20, 8))
    avg_cost: Mapped[Decimal | None] = mapped_column(Numeric(20, 8))
    total_cost: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    realized_pnl: Mapped[Decimal] = mapped_column(Numeric(20, 4))

    # Base currency, accumulated trade by trade at each trade date's rate
    total_cost_base: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    realized_pnl_base: Mapped[Decimal] = mapped_column(Numeric(20, 4))
    avg_fx_rate: Mapped[Decimal | None] = mapped_column(Numeric(20, 10))
    uses_estimated_fx: Mapped[bool] = mapped_column(Boolean, default=False)

    trade_count: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    @classmethod
    def from_snapshot(cls, snapshot: PositionSnapshot) -> "Position":
        return cls(
            symbol=snapshot.symbol,
            currency=snapshot.currency,
            status=snapshot.status,
            quantity=snapshot.quantity,
            avg_cost=snapshot.avg_cost,
            total_cost=snapshot.total_cost,
            realized_pnl=snapshot.realized_pnl,
            total_cost_base=snapshot.total_cost_base,
            realized_pnl_base=snapshot.realized_pnl_base,
            avg_fx_rate=snapshot.avg_fx_rate,
            uses_estimated_fx=snapshot.uses_estimated_fx,
            trade_count=snapshot.trade_count,
        )

    def __repr__(self) -> str:
        return f"<Position(symbol='{self.symbol}', quantity={self.quantity}, status={self.status})>"
