"""Portfolio valuation service - live market values on top of stored positions.

Cost basis stays at the historical trade-date rates stored on each position;
market value converts at the latest resolved rate, so unrealized P&L in base
currency captures price and FX movement together.
"""

import logging
from collections.abc import Sequence
from decimal import Decimal

from activity_ledger.constants import PositionStatus
from activity_ledger.models import Position
from activity_ledger.services.fx_rate_resolver import FxRateTable
from activity_ledger.services.quote_provider import QuoteProvider
from activity_ledger.services.valuation_types import PortfolioSummary, PositionValue

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class PortfolioValuationService:
    """Values positions with live quotes.

    A missing quote leaves the market fields of that position None; it never
    fails the valuation.
    """

    def __init__(self, quote_provider: QuoteProvider, fx_table: FxRateTable) -> None:
        self._quotes = quote_provider
        self._fx_table = fx_table

    def value_position(self, position: Position) -> PositionValue:
        """Calculate live values for a single stored position."""
        value = PositionValue(
            symbol=position.symbol,
            currency=position.currency,
            status=position.status,
            quantity=position.quantity,
            avg_cost=position.avg_cost,
            total_cost=position.total_cost,
            realized_pnl=position.realized_pnl,
            total_cost_base=position.total_cost_base,
            realized_pnl_base=position.realized_pnl_base,
            avg_fx_rate=position.avg_fx_rate,
            uses_estimated_fx=position.uses_estimated_fx,
        )
        if position.status != PositionStatus.OPEN:
            return value

        value.fx_rate = self._fx_table.latest_rate(position.currency).rate

        quote = self._quotes.get_quote(position.symbol, position.currency)
        if quote is None:
            return value

        value.current_price = quote.price
        value.market_value = position.quantity * quote.price
        value.unrealized_pnl = value.market_value - position.total_cost
        if position.total_cost > 0:
            value.unrealized_pnl_pct = value.unrealized_pnl / position.total_cost * _HUNDRED
        if quote.change is not None:
            value.day_change = quote.change * position.quantity

        value.market_value_base = value.market_value * value.fx_rate
        value.unrealized_pnl_base = value.market_value_base - position.total_cost_base
        return value

    def summarize(self, positions: Sequence[Position]) -> PortfolioSummary:
        """Value every position and total the open ones in base currency.

        Market totals are None when no open position could be quoted.
        """
        values = [self.value_position(p) for p in positions]
        open_values = [v for v in values if v.status == PositionStatus.OPEN]
        quoted = [v for v in open_values if v.market_value_base is not None]

        total_cost = sum((v.total_cost_base for v in open_values), _ZERO)
        total_realized = sum((v.realized_pnl_base for v in values), _ZERO)

        if quoted:
            total_market_value = sum((v.market_value_base for v in quoted), _ZERO)
            total_unrealized = sum((v.unrealized_pnl_base for v in quoted), _ZERO)
            quoted_cost = sum((v.total_cost_base for v in quoted), _ZERO)
            total_unrealized_pct = total_unrealized / quoted_cost * _HUNDRED if quoted_cost else None
            day_pnl = sum(
                (v.day_change * v.fx_rate for v in quoted if v.day_change is not None), _ZERO
            )
        else:
            total_market_value = total_unrealized = total_unrealized_pct = day_pnl = None

        if len(quoted) < len(open_values):
            logger.warning(f"No quote for {len(open_values) - len(quoted)} open positions")

        return PortfolioSummary(
            base_currency=self._fx_table.base_currency,
            total_cost=total_cost,
            total_market_value=total_market_value,
            total_unrealized_pnl=total_unrealized,
            total_unrealized_pnl_pct=total_unrealized_pct,
            total_realized_pnl=total_realized,
            day_pnl=day_pnl,
            positions=values,
        )
