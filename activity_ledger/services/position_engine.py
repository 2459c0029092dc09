"""Average-cost position reconstruction.

Positions are never stored as a source of truth. They are recomputed by
folding a symbol's full trade history in date order (file order within a
day) into a running state of quantity, cost and realized P&L:

- BUY adds ``qty * price + commission + fees`` to the cost basis.
- SELL relieves cost at the blended average cost. A sell larger than the
  holding is clamped to the holding and reported with a ``ClampWarning``.
- A trade carrying a source-reported realized P&L replaces the running
  cumulative figure at that point instead of being added to it.

Base-currency totals are accumulated trade by trade with that trade date's
FX rate, never by converting a blended native total at the end.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from activity_ledger.constants import CLOSED_QUANTITY_EPSILON, PositionStatus
from activity_ledger.services.errors import ClampWarning
from activity_ledger.services.fx_rate_resolver import FxRateTable
from activity_ledger.services.ledger_types import (
    PositionSnapshot,
    ReconstructionResult,
    TradeRecord,
)

logger = logging.getLogger(__name__)

_ZERO = Decimal("0")


@dataclass
class _RunningPosition:
    symbol: str
    currency: str
    quantity: Decimal = _ZERO
    total_cost: Decimal = _ZERO
    realized_pnl: Decimal = _ZERO
    total_cost_base: Decimal = _ZERO
    realized_pnl_base: Decimal = _ZERO
    uses_estimated_fx: bool = False
    trade_count: int = 0

    def snapshot(self) -> PositionSnapshot:
        is_closed = abs(self.quantity) < CLOSED_QUANTITY_EPSILON
        return PositionSnapshot(
            symbol=self.symbol,
            currency=self.currency,
            quantity=self.quantity,
            total_cost=self.total_cost,
            avg_cost=None if is_closed or self.quantity <= 0 else self.total_cost / self.quantity,
            realized_pnl=self.realized_pnl,
            status=PositionStatus.CLOSED if is_closed else PositionStatus.OPEN,
            total_cost_base=self.total_cost_base,
            realized_pnl_base=self.realized_pnl_base,
            uses_estimated_fx=self.uses_estimated_fx,
            trade_count=self.trade_count,
        )


def sort_trades(trades: Iterable[TradeRecord]) -> list[TradeRecord]:
    """Chronological order, ties broken by original file order."""
    return sorted(trades, key=lambda t: (t.trade_date, t.sequence))


def fold_symbol(
    symbol: str, trades: Iterable[TradeRecord], fx_table: FxRateTable
) -> tuple[PositionSnapshot, list[ClampWarning]]:
    """Fold one symbol's trades into its position.

    Args:
        symbol: Canonical symbol
        trades: Every trade of that symbol (any order)
        fx_table: Resolved rates used for base-currency totals

    Returns:
        Tuple of (PositionSnapshot, clamp warnings raised while folding)
    """
    ordered = sort_trades(trades)
    if not ordered:
        raise ValueError(f"No trades to fold for {symbol}")

    state = _RunningPosition(symbol=symbol, currency=ordered[0].currency)
    warnings: list[ClampWarning] = []

    for trade in ordered:
        fx = fx_table.rate_for(trade.currency, trade.trade_date)
        if fx.is_estimated:
            state.uses_estimated_fx = True
        state.trade_count += 1

        if trade.is_buy:
            cost = trade.gross_amount + trade.commission + trade.fees
            state.total_cost += cost
            state.total_cost_base += cost * fx.rate
            state.quantity += trade.quantity
        else:
            held = max(state.quantity, _ZERO)
            if trade.quantity > held:
                warning = ClampWarning(
                    symbol=symbol,
                    date=trade.trade_date,
                    requested=trade.quantity,
                    applied=held,
                )
                logger.warning(f"Clamped sell: {warning}")
                warnings.append(warning)

            if state.quantity > 0:
                avg_cost = state.total_cost / state.quantity
                avg_cost_base = state.total_cost_base / state.quantity
                sold = min(trade.quantity, state.quantity)

                cost_of_sold = avg_cost * sold
                cost_of_sold_base = avg_cost_base * sold
                proceeds = sold * trade.price - trade.commission - trade.fees

                state.realized_pnl += proceeds - cost_of_sold
                state.realized_pnl_base += proceeds * fx.rate - cost_of_sold_base
                state.total_cost -= cost_of_sold
                state.total_cost_base -= cost_of_sold_base
                state.quantity -= sold

        if trade.realized_pnl is not None:
            # Source figure is cumulative as of this trade
            state.realized_pnl = trade.realized_pnl
            state.realized_pnl_base = trade.realized_pnl * fx.rate

    return state.snapshot(), warnings


def reconstruct_positions(
    trades: Iterable[TradeRecord], fx_table: FxRateTable
) -> ReconstructionResult:
    """Reconstruct every symbol's position from a trade set.

    Symbols are independent, so the order in which they are folded does not
    affect the result.
    """
    by_symbol: dict[str, list[TradeRecord]] = {}
    for trade in trades:
        by_symbol.setdefault(trade.symbol, []).append(trade)

    result = ReconstructionResult()
    for symbol, symbol_trades in by_symbol.items():
        snapshot, warnings = fold_symbol(symbol, symbol_trades, fx_table)
        result.positions[symbol] = snapshot
        result.clamp_warnings.extend(warnings)

    result.fx_warnings = list(fx_table.warnings)

    logger.info(
        f"Reconstructed {len(result.positions)} positions "
        f"({len(result.open_positions)} open, {len(result.clamp_warnings)} clamped sells)"
    )
    return result
