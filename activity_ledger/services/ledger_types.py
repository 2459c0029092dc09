"""Normalized record types shared by the statement pipeline.

These are plain value objects: the parser and normalizer produce them, the
FX resolver and position engine consume them, and the import service maps
them onto ORM rows.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from activity_ledger.constants import AssetClass, FxProvenance, PositionStatus, TradeAction
from activity_ledger.services.errors import (
    ClampWarning,
    RateFallbackWarning,
    RowError,
)


@dataclass(frozen=True)
class TradeRecord:
    """One executed trade of a security, normalized."""

    trade_date: date
    symbol: str
    action: str  # TradeAction.BUY / TradeAction.SELL
    quantity: Decimal
    price: Decimal
    currency: str
    settle_date: date | None = None
    description: str = ""
    asset_class: str = AssetClass.STOCK
    fx_rate: Decimal | None = None  # Source-reported, advisory only
    proceeds: Decimal | None = None
    cost_basis: Decimal | None = None
    realized_pnl: Decimal | None = None  # Authoritative cumulative figure when present
    commission: Decimal = Decimal("0")
    fees: Decimal = Decimal("0")
    sequence: int = 0  # Original file order, breaks ties within a day

    @property
    def is_buy(self) -> bool:
        return self.action == TradeAction.BUY

    @property
    def gross_amount(self) -> Decimal:
        return self.quantity * self.price


@dataclass(frozen=True)
class IncomeRecord:
    """A dividend, interest or other cash income line."""

    date: date
    symbol: str
    income_type: str
    amount: Decimal
    currency: str
    description: str = ""


@dataclass(frozen=True)
class ForexTrade:
    """A currency conversion embedded in the Trades section (e.g. SGD.HKD)."""

    trade_date: date
    pair: str
    base_leg: str  # Currency being bought or sold
    quote_leg: str  # Currency the price is expressed in
    price: Decimal
    quantity: Decimal = Decimal("0")
    sequence: int = 0


@dataclass(frozen=True)
class FxObservation:
    """Resolved rate-to-base for one currency on one day."""

    currency: str
    date: date
    rate: Decimal
    provenance: str = FxProvenance.OBSERVED
    sample_count: int = 0

    @property
    def is_estimated(self) -> bool:
        return self.provenance == FxProvenance.DEFAULT


@dataclass
class NormalizedStatement:
    """Complete normalized content of one activity statement."""

    statement_start: date | None = None
    statement_end: date | None = None
    trades: list[TradeRecord] = field(default_factory=list)
    income: list[IncomeRecord] = field(default_factory=list)
    forex_trades: list[ForexTrade] = field(default_factory=list)
    errors: list[RowError] = field(default_factory=list)

    @property
    def total_records(self) -> int:
        """Total number of records parsed."""
        return len(self.trades) + len(self.income) + len(self.forex_trades)


@dataclass(frozen=True)
class PositionSnapshot:
    """Reconstructed position for one symbol, native and base currency."""

    symbol: str
    currency: str
    quantity: Decimal
    total_cost: Decimal
    avg_cost: Decimal | None
    realized_pnl: Decimal
    status: str
    total_cost_base: Decimal = Decimal("0")
    realized_pnl_base: Decimal = Decimal("0")
    uses_estimated_fx: bool = False
    trade_count: int = 0

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN

    @property
    def avg_fx_rate(self) -> Decimal | None:
        """Cost-weighted FX rate of the remaining cost basis."""
        if self.total_cost == 0:
            return None
        return self.total_cost_base / self.total_cost


@dataclass
class ReconstructionResult:
    """Outcome of folding a trade set into positions."""

    positions: dict[str, PositionSnapshot] = field(default_factory=dict)
    clamp_warnings: list[ClampWarning] = field(default_factory=list)
    fx_warnings: list[RateFallbackWarning] = field(default_factory=list)

    @property
    def open_positions(self) -> list[PositionSnapshot]:
        return [p for p in self.positions.values() if p.is_open]

    @property
    def total_realized_pnl_base(self) -> Decimal:
        """Realized P&L in base currency across open and closed positions."""
        return sum((p.realized_pnl_base for p in self.positions.values()), Decimal("0"))
