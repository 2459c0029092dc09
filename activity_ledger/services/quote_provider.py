"""Live quotes for open positions."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

import yfinance as yf

logger = logging.getLogger(__name__)

# Yahoo Finance suffix per listing currency, for symbols stored without one
_EXCHANGE_SUFFIXES = {
    "HKD": ".HK",
    "SGD": ".SI",
    "JPY": ".T",
    "GBP": ".L",
}


@dataclass(frozen=True)
class Quote:
    symbol: str
    price: Decimal
    change: Decimal | None = None  # Since previous close
    change_pct: Decimal | None = None
    currency: str | None = None


class QuoteProvider(Protocol):
    def get_quote(self, symbol: str, currency: str | None = None) -> Quote | None: ...


def _to_decimal(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def yahoo_symbol(symbol: str, currency: str | None = None) -> str:
    """Ticker as Yahoo Finance expects it, e.g. HKD-listed "700" -> "0700.HK"."""
    suffix = _EXCHANGE_SUFFIXES.get((currency or "").upper())
    if not suffix or "." in symbol:
        return symbol
    if suffix == ".HK" and symbol.isdigit():
        return f"{symbol.zfill(4)}{suffix}"
    return f"{symbol}{suffix}"


class YFinanceQuoteProvider:
    """Quote provider backed by Yahoo Finance.

    Any failure yields None so valuation can degrade to cost-only figures.
    """

    def get_quote(self, symbol: str, currency: str | None = None) -> Quote | None:
        ticker_symbol = yahoo_symbol(symbol, currency)
        try:
            info = yf.Ticker(ticker_symbol).info

            # Try to get current price from different fields (in order of preference)
            price = (
                info.get("currentPrice")
                or info.get("regularMarketPrice")
                or info.get("previousClose")
            )
            if not price or price <= 0:
                logger.warning(f"No valid price found for {ticker_symbol}")
                return None

            return Quote(
                symbol=symbol,
                price=Decimal(str(price)),
                change=_to_decimal(info.get("regularMarketChange")),
                change_pct=_to_decimal(info.get("regularMarketChangePercent")),
                currency=info.get("currency"),
            )

        except Exception as e:
            logger.error(f"Error fetching quote for {ticker_symbol}: {str(e)}")
            return None
