"""Value objects for portfolio valuation."""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class PositionValue:
    """Stored position enriched with a live quote."""

    symbol: str
    currency: str
    status: str
    quantity: Decimal
    avg_cost: Decimal | None
    total_cost: Decimal
    realized_pnl: Decimal

    # Historical base-currency values, from trade-date rates
    total_cost_base: Decimal
    realized_pnl_base: Decimal
    avg_fx_rate: Decimal | None
    uses_estimated_fx: bool

    # Live values (None when no quote is available)
    current_price: Decimal | None = None
    market_value: Decimal | None = None
    unrealized_pnl: Decimal | None = None
    unrealized_pnl_pct: Decimal | None = None
    day_change: Decimal | None = None

    # Base currency at the latest resolved rate
    fx_rate: Decimal | None = None
    market_value_base: Decimal | None = None
    unrealized_pnl_base: Decimal | None = None


@dataclass
class PortfolioSummary:
    """Base-currency totals over open positions."""

    base_currency: str
    total_cost: Decimal
    total_market_value: Decimal | None
    total_unrealized_pnl: Decimal | None
    total_unrealized_pnl_pct: Decimal | None
    total_realized_pnl: Decimal
    day_pnl: Decimal | None
    positions: list[PositionValue] = field(default_factory=list)
