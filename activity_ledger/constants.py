"""Application constants to avoid magic strings."""

from decimal import Decimal


class SectionName:
    """Section markers captured from an activity statement."""

    TRADES = "Trades"
    DIVIDENDS = "Dividends"
    INTEREST = "Interest"
    STATEMENT = "Statement"

    ALL = frozenset({TRADES, DIVIDENDS, INTEREST, STATEMENT})


class RowKind:
    """Row kind markers (second cell of every statement row)."""

    HEADER = "Header"
    DATA = "Data"


class TradeAction:
    """Trade direction constants."""

    BUY = "BUY"
    SELL = "SELL"


class IncomeType:
    """Income record type constants."""

    DIVIDEND = "DIVIDEND"
    INTEREST = "INTEREST"
    OTHER = "OTHER"


class FxProvenance:
    """Where a resolved exchange rate came from."""

    OBSERVED = "observed"
    DEFAULT = "default"


class PositionStatus:
    """Position status constants."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AssetClass:
    """Asset class constants."""

    STOCK = "STK"


# Quantities below this magnitude count as a closed position
CLOSED_QUANTITY_EPSILON = Decimal("0.0001")

# Symbol used for income rows that carry no instrument (e.g. credit interest)
CASH_SYMBOL = "CASH"
